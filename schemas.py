from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from money import format_money, parse_money


def _money_or_none(value):
    if value is None:
        return None
    return parse_money(value)


MoneyIn = Annotated[Optional[Decimal], BeforeValidator(_money_or_none)]
Money = Annotated[
    Decimal, PlainSerializer(format_money, return_type=str, when_used="json")
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class LoginIn(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ChangeCredentialsIn(CamelModel):
    current_password: Optional[str] = None
    new_username: Optional[str] = None
    new_password: Optional[str] = None


class IncomeIn(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    expected: MoneyIn = None
    actual: MoneyIn = None


class IncomeUpdate(IncomeIn):
    pass


class ExpenseIn(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    budgeted: MoneyIn = None


class ExpenseUpdate(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    budgeted: MoneyIn = None
    actual: MoneyIn = None
    is_paid: Optional[bool] = None
    show_paid_status: Optional[bool] = None


class SavingsGoalIn(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    target_amount: MoneyIn = None
    current_amount: MoneyIn = None


class SavingsGoalUpdate(SavingsGoalIn):
    pass


class IncomeSourceOut(OrmModel):
    id: int
    name: str
    expected: Money
    actual: Money
    monthly_data_id: int


class ExpenseCategoryOut(OrmModel):
    id: int
    name: str
    budgeted: Money
    actual: Money
    is_paid: bool
    show_paid_status: bool
    monthly_data_id: int


class MonthListItem(OrmModel):
    id: int
    month: str


class MonthlyDataOut(OrmModel):
    id: int
    month: str
    created_at: datetime
    updated_at: datetime
    income_sources: list[IncomeSourceOut]
    expense_categories: list[ExpenseCategoryOut]


class SavingsGoalOut(OrmModel):
    id: int
    name: str
    target_amount: Money
    current_amount: Money
    created_at: datetime
    updated_at: datetime


class MonthSummaryOut(OrmModel):
    month: str
    expected_income: Money
    actual_income: Money
    effective_income: Money
    budgeted: Money
    actual_expenses: Money
    savings: Money


class CategoryTotalOut(OrmModel):
    name: str
    budgeted: Money
    actual: Money
    variance: Money


class YearTotalsOut(OrmModel):
    expected_income: Money
    actual_income: Money
    effective_income: Money
    budgeted: Money
    actual_expenses: Money
    savings: Money


class YearAveragesOut(OrmModel):
    monthly_income: Money
    monthly_expenses: Money
    monthly_savings: Money


class HighlightsOut(OrmModel):
    best_month: Optional[MonthSummaryOut]
    worst_month: Optional[MonthSummaryOut]
    highest_spending_month: Optional[MonthSummaryOut]
    top_spending_category: Optional[CategoryTotalOut]


class YearlySummaryOut(OrmModel):
    year: str
    month_count: int
    totals: YearTotalsOut
    averages: YearAveragesOut
    savings_rate: float
    monthly_breakdown: list[MonthSummaryOut]
    category_breakdown: list[CategoryTotalOut]
    highlights: HighlightsOut
