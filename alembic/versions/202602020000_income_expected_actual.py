"""split income into expected/actual and add show_paid_status

Revision ID: 202602020000
Revises: 202602010000
Create Date: 2026-02-02 00:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202602020000"
down_revision = "202602010000"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("income_sources") as batch:
        batch.alter_column(
            "amount", new_column_name="expected", existing_type=sa.Numeric(10, 2)
        )
        batch.add_column(
            sa.Column("actual", sa.Numeric(10, 2), nullable=False, server_default="0")
        )
        batch.create_check_constraint("ck_income_expected_positive", "expected >= 0")
        batch.create_check_constraint("ck_income_actual_positive", "actual >= 0")

    with op.batch_alter_table("expense_categories") as batch:
        batch.add_column(
            sa.Column(
                "show_paid_status",
                sa.Boolean(),
                nullable=False,
                server_default=sa.false(),
            )
        )

    # Rent and Car Insurance are the bills that get a paid toggle by default.
    expense_categories = sa.table(
        "expense_categories",
        sa.column("name", sa.String),
        sa.column("show_paid_status", sa.Boolean),
    )
    op.execute(
        expense_categories.update()
        .where(expense_categories.c.name.in_(["Rent", "Car Insurance"]))
        .values(show_paid_status=True)
    )


def downgrade() -> None:
    with op.batch_alter_table("expense_categories") as batch:
        batch.drop_column("show_paid_status")

    with op.batch_alter_table("income_sources") as batch:
        batch.drop_constraint("ck_income_actual_positive", type_="check")
        batch.drop_constraint("ck_income_expected_positive", type_="check")
        batch.drop_column("actual")
        batch.alter_column(
            "expected", new_column_name="amount", existing_type=sa.Numeric(10, 2)
        )
