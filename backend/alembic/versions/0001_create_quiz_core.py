"""create quiz core

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("patient_gender", sa.String(length=16), nullable=False, server_default=""),
        sa.Column("age1", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("age2", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("age3", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_cases_code", "cases", ["code"], unique=False)

    op.create_table(
        "parameters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("reference_values", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "case_parameters",
        sa.Column("case_id", sa.Integer(), sa.ForeignKey("cases.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column(
            "parameter_id", sa.Integer(), sa.ForeignKey("parameters.id", ondelete="CASCADE"), primary_key=True, nullable=False
        ),
        sa.Column("value1", sa.Float(), nullable=False, server_default="0"),
        sa.Column("value2", sa.Float(), nullable=False, server_default="0"),
        sa.Column("value3", sa.Float(), nullable=True),
    )

    op.create_table(
        "options",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("option", sa.String(length=200), nullable=False),
    )

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("question", sa.Text(), nullable=False, server_default=""),
        sa.Column("prediction_age", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("case_id", sa.Integer(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("group_number", sa.Integer(), nullable=False),
    )
    op.create_index("ix_questions_case_id", "questions", ["case_id"], unique=False)
    op.create_index("ix_questions_group_number", "questions", ["group_number"], unique=False)

    op.create_table(
        "question_options",
        sa.Column(
            "question_id", sa.Integer(), sa.ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True, nullable=False
        ),
        sa.Column("option_id", sa.Integer(), sa.ForeignKey("options.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )

    op.create_table(
        "tests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=24), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_tests_code", "tests", ["code"], unique=True)
    op.create_index("ix_tests_created_by", "tests", ["created_by"], unique=False)

    op.create_table(
        "test_questions",
        sa.Column("test_id", sa.Integer(), sa.ForeignKey("tests.id", ondelete="CASCADE"), primary_key=True, nullable=False),
        sa.Column(
            "question_id", sa.Integer(), sa.ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True, nullable=False
        ),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "quiz_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="not_started"),
        sa.Column("mode", sa.String(length=20), nullable=False),
        sa.Column("screen_size", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("current_question", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_group", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("group_order", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("test_id", sa.Integer(), sa.ForeignKey("tests.id", ondelete="SET NULL"), nullable=True),
        sa.Column("test_code", sa.String(length=24), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("question_requested_time", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_quiz_sessions_user_id", "quiz_sessions", ["user_id"], unique=False)
    op.create_index("ix_quiz_sessions_status", "quiz_sessions", ["status"], unique=False)
    op.create_index("ix_quiz_sessions_test_id", "quiz_sessions", ["test_id"], unique=False)

    op.create_table(
        "settings",
        sa.Column("name", sa.String(length=100), primary_key=True, nullable=False),
        sa.Column("value", sa.Text(), nullable=False, server_default=""),
    )

    op.create_table(
        "quiz_user_access",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "quiz_user_registry",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False, server_default="first_seen"),
    )

    op.execute(
        "INSERT INTO settings (name, value) VALUES "
        "('quiz_security_mode', 'cooldown'), ('quiz_cooldown_hours', '24'), ('time_limit', '60')"
    )


def downgrade() -> None:
    op.drop_table("quiz_user_registry")
    op.drop_table("quiz_user_access")
    op.drop_table("settings")
    op.drop_index("ix_quiz_sessions_test_id", table_name="quiz_sessions")
    op.drop_index("ix_quiz_sessions_status", table_name="quiz_sessions")
    op.drop_index("ix_quiz_sessions_user_id", table_name="quiz_sessions")
    op.drop_table("quiz_sessions")
    op.drop_table("test_questions")
    op.drop_index("ix_tests_created_by", table_name="tests")
    op.drop_index("ix_tests_code", table_name="tests")
    op.drop_table("tests")
    op.drop_table("question_options")
    op.drop_index("ix_questions_group_number", table_name="questions")
    op.drop_index("ix_questions_case_id", table_name="questions")
    op.drop_table("questions")
    op.drop_table("options")
    op.drop_table("case_parameters")
    op.drop_table("parameters")
    op.drop_index("ix_cases_code", table_name="cases")
    op.drop_table("cases")
