from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from config import get_settings
from models import ExpenseCategory, IncomeSource, MonthlyData, SavingsGoal, User
from money import CENT, ZERO, money_sum
from periods import parse_month_key, validate_year, year_prefix
from schemas import (
    ChangeCredentialsIn,
    ExpenseIn,
    ExpenseUpdate,
    IncomeIn,
    IncomeUpdate,
    SavingsGoalIn,
    SavingsGoalUpdate,
)
from security import (
    MIN_PASSWORD_LENGTH,
    hash_password,
    verify_password,
    verify_unknown_user,
)

logger = logging.getLogger(__name__)

# name, show_paid_status
DEFAULT_EXPENSE_CATEGORIES: tuple[tuple[str, bool], ...] = (
    ("Rent", True),
    ("Groceries", False),
    ("Car Insurance", True),
    ("Clothes", False),
    ("Other", False),
)


class NotFoundError(ValueError):
    pass


class ConflictError(ValueError):
    pass


class AuthenticationError(ValueError):
    pass


@dataclass(frozen=True)
class RequestContext:
    user_id: int
    username: str


def _apply_changes(
    target: object, changes: dict[str, object], money_fields: tuple[str, ...]
) -> None:
    for field, value in changes.items():
        if value is None:
            if field not in money_fields:
                raise ValueError(f"{field} cannot be null")
            value = ZERO
        setattr(target, field, value)


class AuthService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _by_username(self, username: str) -> Optional[User]:
        return self.session.scalar(select(User).where(User.username == username))

    def authenticate(self, username: Optional[str], password: Optional[str]) -> User:
        if not username or not password:
            raise ValueError("Username and password required")
        user = self._by_username(str(username))
        # one message and one bcrypt check for unknown user and bad password
        if user is None:
            verify_unknown_user(str(password))
            raise AuthenticationError("Invalid credentials")
        if not verify_password(str(password), user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return user

    def change_credentials(self, user_id: int, data: ChangeCredentialsIn) -> User:
        if not data.current_password:
            raise ValueError("Current password required")
        if not data.new_username and not data.new_password:
            raise ValueError("New username or password required")

        user = self.session.get(User, user_id)
        if not user:
            raise AuthenticationError("User not found")
        if not verify_password(data.current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        if data.new_username:
            existing = self._by_username(data.new_username)
            if existing and existing.id != user.id:
                raise ConflictError("Username already taken")

        password_hash = None
        if data.new_password:
            if len(data.new_password) < MIN_PASSWORD_LENGTH:
                raise ValueError(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
                )
            if len(data.new_password.encode("utf-8")) > 72:
                raise ValueError("Password must be at most 72 bytes")
            password_hash = hash_password(data.new_password)

        if data.new_username:
            user.username = data.new_username
        if password_hash:
            user.password_hash = password_hash
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Username already taken") from exc
        self.session.refresh(user)
        logger.info(
            "credentials_changed: user_id=%s username_changed=%s password_changed=%s",
            user.id,
            bool(data.new_username),
            bool(password_hash),
        )
        return user

    def ensure_user(self, username: str, password: str) -> Optional[User]:
        """Create the first account; returns None when any user already exists."""
        if self.session.scalar(select(User.id).limit(1)) is not None:
            return None
        if not username or len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Seed user needs a username and a password of at least "
                f"{MIN_PASSWORD_LENGTH} characters"
            )
        user = User(username=username, password_hash=hash_password(password))
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user


class MonthService:
    def __init__(self, session: Session, conflict_policy: Optional[str] = None) -> None:
        self.session = session
        self.conflict_policy = conflict_policy or get_settings().month_conflict_policy

    def _load(self, month: str) -> Optional[MonthlyData]:
        stmt = (
            select(MonthlyData)
            .options(
                selectinload(MonthlyData.income_sources),
                selectinload(MonthlyData.expense_categories),
            )
            .where(MonthlyData.month == month)
            .execution_options(populate_existing=True)
        )
        return self.session.scalar(stmt)

    def list_months(self) -> list[MonthlyData]:
        stmt = select(MonthlyData).order_by(MonthlyData.month.desc())
        return self.session.scalars(stmt).all()

    def get(self, month: str) -> MonthlyData:
        key = parse_month_key(month).key
        monthly = self._load(key)
        if not monthly:
            raise NotFoundError("Month not found")
        return monthly

    def _initial_categories(self, month: str) -> list[ExpenseCategory]:
        previous = self.session.scalar(
            select(MonthlyData)
            .options(selectinload(MonthlyData.expense_categories))
            .where(MonthlyData.month < month)
            .order_by(MonthlyData.month.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        if previous and previous.expense_categories:
            return [
                ExpenseCategory(
                    name=cat.name,
                    budgeted=cat.budgeted,
                    actual=ZERO,
                    is_paid=False,
                    show_paid_status=cat.show_paid_status,
                )
                for cat in previous.expense_categories
            ]
        return [
            ExpenseCategory(
                name=name,
                budgeted=ZERO,
                actual=ZERO,
                is_paid=False,
                show_paid_status=show_paid_status,
            )
            for name, show_paid_status in DEFAULT_EXPENSE_CATEGORIES
        ]

    def get_or_create(self, month: str) -> MonthlyData:
        key = parse_month_key(month).key
        monthly = self._load(key)
        if monthly:
            return monthly

        monthly = MonthlyData(
            month=key,
            income_sources=[],
            expense_categories=self._initial_categories(key),
        )
        self.session.add(monthly)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            if self.conflict_policy == "error":
                raise ConflictError(
                    f"Month {key} was created by a concurrent request"
                ) from exc
            winner = self._load(key)
            if not winner:
                raise
            logger.info("month_create_conflict: month=%s resolved=existing", key)
            return winner
        logger.info(
            "month_created: month=%s categories=%d",
            key,
            len(monthly.expense_categories),
        )
        return monthly

    def delete(self, month: str) -> None:
        monthly = self.get(month)
        # children go in the same flush through the relationship cascade
        self.session.delete(monthly)
        self.session.commit()
        logger.info("month_deleted: month=%s", monthly.month)


class IncomeService:
    MONEY_FIELDS = ("expected", "actual")

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, income_id: int) -> IncomeSource:
        income = self.session.get(IncomeSource, income_id)
        if not income:
            raise NotFoundError("Income source not found")
        return income

    def create(self, month: str, data: IncomeIn) -> IncomeSource:
        monthly = MonthService(self.session).get(month)
        income = IncomeSource(
            name=data.name or "New Income",
            expected=data.expected if data.expected is not None else ZERO,
            actual=data.actual if data.actual is not None else ZERO,
        )
        monthly.income_sources.append(income)
        self.session.commit()
        self.session.refresh(income)
        return income

    def update(self, income_id: int, data: IncomeUpdate) -> IncomeSource:
        income = self.get(income_id)
        _apply_changes(income, data.model_dump(exclude_unset=True), self.MONEY_FIELDS)
        self.session.commit()
        self.session.refresh(income)
        return income

    def delete(self, income_id: int) -> None:
        income = self.get(income_id)
        self.session.delete(income)
        self.session.commit()


class ExpenseService:
    MONEY_FIELDS = ("budgeted", "actual")

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, expense_id: int) -> ExpenseCategory:
        expense = self.session.get(ExpenseCategory, expense_id)
        if not expense:
            raise NotFoundError("Expense category not found")
        return expense

    def create(self, month: str, data: ExpenseIn) -> ExpenseCategory:
        monthly = MonthService(self.session).get(month)
        expense = ExpenseCategory(
            name=data.name or "New Category",
            budgeted=data.budgeted if data.budgeted is not None else ZERO,
            actual=ZERO,
            is_paid=False,
            show_paid_status=False,
        )
        monthly.expense_categories.append(expense)
        self.session.commit()
        self.session.refresh(expense)
        return expense

    def update(self, expense_id: int, data: ExpenseUpdate) -> ExpenseCategory:
        expense = self.get(expense_id)
        _apply_changes(expense, data.model_dump(exclude_unset=True), self.MONEY_FIELDS)
        self.session.commit()
        self.session.refresh(expense)
        return expense

    def delete(self, expense_id: int) -> None:
        expense = self.get(expense_id)
        self.session.delete(expense)
        self.session.commit()


class SavingsGoalService:
    MONEY_FIELDS = ("target_amount", "current_amount")

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[SavingsGoal]:
        stmt = select(SavingsGoal).order_by(
            SavingsGoal.created_at.desc(), SavingsGoal.id.desc()
        )
        return self.session.scalars(stmt).all()

    def get(self, goal_id: int) -> SavingsGoal:
        goal = self.session.get(SavingsGoal, goal_id)
        if not goal:
            raise NotFoundError("Savings goal not found")
        return goal

    def create(self, data: SavingsGoalIn) -> SavingsGoal:
        goal = SavingsGoal(
            name=data.name or "New Goal",
            target_amount=(
                data.target_amount if data.target_amount is not None else ZERO
            ),
            current_amount=(
                data.current_amount if data.current_amount is not None else ZERO
            ),
        )
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def update(self, goal_id: int, data: SavingsGoalUpdate) -> SavingsGoal:
        goal = self.get(goal_id)
        _apply_changes(goal, data.model_dump(exclude_unset=True), self.MONEY_FIELDS)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def delete(self, goal_id: int) -> None:
        goal = self.get(goal_id)
        self.session.delete(goal)
        self.session.commit()


@dataclass(frozen=True)
class MonthSummary:
    month: str
    expected_income: Decimal
    actual_income: Decimal
    effective_income: Decimal
    budgeted: Decimal
    actual_expenses: Decimal
    savings: Decimal


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    budgeted: Decimal
    actual: Decimal
    variance: Decimal


@dataclass(frozen=True)
class YearTotals:
    expected_income: Decimal
    actual_income: Decimal
    effective_income: Decimal
    budgeted: Decimal
    actual_expenses: Decimal
    savings: Decimal


@dataclass(frozen=True)
class YearAverages:
    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_savings: Decimal


@dataclass(frozen=True)
class Highlights:
    best_month: Optional[MonthSummary]
    worst_month: Optional[MonthSummary]
    highest_spending_month: Optional[MonthSummary]
    top_spending_category: Optional[CategoryTotal]


@dataclass(frozen=True)
class YearlySummary:
    year: str
    month_count: int
    totals: YearTotals
    averages: YearAverages
    savings_rate: float
    monthly_breakdown: list[MonthSummary]
    category_breakdown: list[CategoryTotal]
    highlights: Highlights


def summarize_month(monthly: MonthlyData) -> MonthSummary:
    expected_income = money_sum(inc.expected for inc in monthly.income_sources)
    actual_income = money_sum(inc.actual for inc in monthly.income_sources)
    effective_income = max(expected_income, actual_income)
    actual_expenses = money_sum(exp.actual for exp in monthly.expense_categories)
    return MonthSummary(
        month=monthly.month,
        expected_income=expected_income,
        actual_income=actual_income,
        effective_income=effective_income,
        budgeted=money_sum(exp.budgeted for exp in monthly.expense_categories),
        actual_expenses=actual_expenses,
        savings=effective_income - actual_expenses,
    )


def category_breakdown(months: list[MonthlyData]) -> list[CategoryTotal]:
    budgeted: dict[str, Decimal] = {}
    actual: dict[str, Decimal] = {}
    for monthly in months:
        for exp in monthly.expense_categories:
            budgeted[exp.name] = budgeted.get(exp.name, ZERO) + exp.budgeted
            actual[exp.name] = actual.get(exp.name, ZERO) + exp.actual
    rows = [
        CategoryTotal(
            name=name,
            budgeted=budgeted[name],
            actual=actual[name],
            variance=budgeted[name] - actual[name],
        )
        for name in budgeted
    ]
    # sorted() is stable, ties keep first-seen order
    return sorted(rows, key=lambda row: row.actual, reverse=True)


def summarize_year(year: str, months: list[MonthlyData]) -> YearlySummary:
    breakdown = [summarize_month(monthly) for monthly in months]
    categories = category_breakdown(months)

    expected_income = money_sum(m.expected_income for m in breakdown)
    actual_income = money_sum(m.actual_income for m in breakdown)
    # max of the summed figures, not the sum of monthly maxima
    effective_income = max(expected_income, actual_income)
    actual_expenses = money_sum(m.actual_expenses for m in breakdown)
    savings = effective_income - actual_expenses
    totals = YearTotals(
        expected_income=expected_income,
        actual_income=actual_income,
        effective_income=effective_income,
        budgeted=money_sum(m.budgeted for m in breakdown),
        actual_expenses=actual_expenses,
        savings=savings,
    )

    divisor = Decimal(len(breakdown) or 1)
    averages = YearAverages(
        monthly_income=(effective_income / divisor).quantize(CENT),
        monthly_expenses=(actual_expenses / divisor).quantize(CENT),
        monthly_savings=(savings / divisor).quantize(CENT),
    )

    savings_rate = (
        float(savings * 100 / effective_income) if effective_income > 0 else 0.0
    )

    # max()/min() return the first of equal elements
    highlights = Highlights(
        best_month=max(breakdown, key=lambda m: m.savings, default=None),
        worst_month=min(breakdown, key=lambda m: m.savings, default=None),
        highest_spending_month=max(
            breakdown, key=lambda m: m.actual_expenses, default=None
        ),
        top_spending_category=categories[0] if categories else None,
    )

    return YearlySummary(
        year=year,
        month_count=len(months),
        totals=totals,
        averages=averages,
        savings_rate=savings_rate,
        monthly_breakdown=breakdown,
        category_breakdown=categories,
        highlights=highlights,
    )


class YearlyService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def available_years(self) -> list[str]:
        year = func.substr(MonthlyData.month, 1, 4)
        stmt = select(year).group_by(year).order_by(year.desc())
        return list(self.session.scalars(stmt).all())

    def summary(self, year: str) -> YearlySummary:
        validate_year(year)
        stmt = (
            select(MonthlyData)
            .options(
                selectinload(MonthlyData.income_sources),
                selectinload(MonthlyData.expense_categories),
            )
            .where(MonthlyData.month.startswith(year_prefix(year), autoescape=True))
            .order_by(MonthlyData.month.asc())
            .execution_options(populate_existing=True)
        )
        months = self.session.scalars(stmt).all()
        return summarize_year(year, list(months))
