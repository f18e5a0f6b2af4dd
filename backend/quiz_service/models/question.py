from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quiz_service.db.base import Base


class Case(Base):
    __tablename__ = "cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), index=True)
    patient_gender: Mapped[str] = mapped_column(String(16), default="")
    age1: Mapped[int] = mapped_column(Integer, default=0)
    age2: Mapped[int] = mapped_column(Integer, default=0)
    age3: Mapped[int] = mapped_column(Integer, default=0)

    parameter_values: Mapped[list["CaseParameter"]] = relationship(
        back_populates="case", cascade="all, delete-orphan", lazy="selectin"
    )


class Parameter(Base):
    __tablename__ = "parameters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    reference_values: Mapped[str] = mapped_column(String(200), default="")
    order: Mapped[int] = mapped_column(Integer, default=0)


class CaseParameter(Base):
    __tablename__ = "case_parameters"

    case_id: Mapped[int] = mapped_column(Integer, ForeignKey("cases.id", ondelete="CASCADE"), primary_key=True)
    parameter_id: Mapped[int] = mapped_column(Integer, ForeignKey("parameters.id", ondelete="CASCADE"), primary_key=True)

    value1: Mapped[float] = mapped_column(Float, default=0.0)
    value2: Mapped[float] = mapped_column(Float, default=0.0)
    # Longitudinal value shown only after the user answers.
    value3: Mapped[float | None] = mapped_column(Float, nullable=True)

    case: Mapped[Case] = relationship(back_populates="parameter_values")
    parameter: Mapped[Parameter] = relationship(lazy="joined")


class Option(Base):
    __tablename__ = "options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    option: Mapped[str] = mapped_column(String(200))


class QuestionOption(Base):
    __tablename__ = "question_options"

    question_id: Mapped[int] = mapped_column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True)
    option_id: Mapped[int] = mapped_column(Integer, ForeignKey("options.id", ondelete="CASCADE"), primary_key=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)

    option: Mapped[Option] = relationship(lazy="joined")


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, default="")
    prediction_age: Mapped[int] = mapped_column(Integer, default=0)
    case_id: Mapped[int] = mapped_column(Integer, ForeignKey("cases.id"), index=True)
    group_number: Mapped[int] = mapped_column(Integer, index=True)

    case: Mapped[Case] = relationship(lazy="joined")
    options: Mapped[list[QuestionOption]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by=QuestionOption.option_id
    )
