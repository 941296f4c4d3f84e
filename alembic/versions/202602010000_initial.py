"""initial schema

Revision ID: 202602010000
Revises:
Create Date: 2026-02-01 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202602010000"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("password_hash", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "monthly_data",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("month", name="uq_monthly_data_month"),
    )

    op.create_table(
        "income_sources",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "monthly_data_id",
            sa.Integer(),
            sa.ForeignKey("monthly_data.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_income_sources_monthly_data_id", "income_sources", ["monthly_data_id"]
    )

    op.create_table(
        "expense_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("budgeted", sa.Numeric(10, 2), nullable=False),
        sa.Column("actual", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "monthly_data_id",
            sa.Integer(),
            sa.ForeignKey("monthly_data.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.CheckConstraint("budgeted >= 0", name="ck_expense_budgeted_positive"),
        sa.CheckConstraint("actual >= 0", name="ck_expense_actual_positive"),
    )
    op.create_index(
        "ix_expense_categories_monthly_data_id",
        "expense_categories",
        ["monthly_data_id"],
    )

    op.create_table(
        "savings_goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("target_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "current_amount", sa.Numeric(10, 2), nullable=False, server_default="0"
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("target_amount >= 0", name="ck_goal_target_positive"),
        sa.CheckConstraint("current_amount >= 0", name="ck_goal_current_positive"),
    )


def downgrade():
    op.drop_table("savings_goals")
    op.drop_index(
        "ix_expense_categories_monthly_data_id", table_name="expense_categories"
    )
    op.drop_table("expense_categories")
    op.drop_index("ix_income_sources_monthly_data_id", table_name="income_sources")
    op.drop_table("income_sources")
    op.drop_table("monthly_data")
    op.drop_table("users")
