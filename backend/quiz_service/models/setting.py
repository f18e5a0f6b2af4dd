from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_service.db.base import Base


class Setting(Base):
    __tablename__ = "settings"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="")
