from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

MONEY = Numeric(10, 2)
ZERO = Decimal("0.00")


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(100), nullable=False)


class MonthlyData(Base, TimestampMixin):
    __tablename__ = "monthly_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    month: Mapped[str] = mapped_column(String(7), unique=True, nullable=False)

    income_sources: Mapped[list["IncomeSource"]] = relationship(
        "IncomeSource",
        back_populates="monthly_data",
        cascade="all, delete-orphan",
        order_by="IncomeSource.id",
    )
    expense_categories: Mapped[list["ExpenseCategory"]] = relationship(
        "ExpenseCategory",
        back_populates="monthly_data",
        cascade="all, delete-orphan",
        order_by="ExpenseCategory.id",
    )


class IncomeSource(Base):
    __tablename__ = "income_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    expected: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    actual: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    monthly_data_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_data.id", ondelete="CASCADE"), nullable=False, index=True
    )

    monthly_data: Mapped["MonthlyData"] = relationship(
        "MonthlyData", back_populates="income_sources"
    )

    __table_args__ = (
        CheckConstraint("expected >= 0", name="ck_income_expected_positive"),
        CheckConstraint("actual >= 0", name="ck_income_actual_positive"),
    )


class ExpenseCategory(Base):
    __tablename__ = "expense_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    budgeted: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    actual: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show_paid_status: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    monthly_data_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_data.id", ondelete="CASCADE"), nullable=False, index=True
    )

    monthly_data: Mapped["MonthlyData"] = relationship(
        "MonthlyData", back_populates="expense_categories"
    )

    __table_args__ = (
        CheckConstraint("budgeted >= 0", name="ck_expense_budgeted_positive"),
        CheckConstraint("actual >= 0", name="ck_expense_actual_positive"),
    )


class SavingsGoal(Base, TimestampMixin):
    __tablename__ = "savings_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    current_amount: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=ZERO
    )

    __table_args__ = (
        CheckConstraint("target_amount >= 0", name="ck_goal_target_positive"),
        CheckConstraint("current_amount >= 0", name="ck_goal_current_positive"),
    )
