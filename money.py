from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_AMOUNT = Decimal("100000000")

MoneyInput = Union[str, int, float, Decimal, None]


def parse_money(value: MoneyInput, *, allow_negative: bool = False) -> Decimal:
    """Coerce an API amount into a two-place ``Decimal``.

    Accepts numbers or numeric strings. ``None`` and blank strings become 0.
    Floats go through ``str`` first so ``0.1`` stays ``0.10``.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError("Invalid amount")
    if isinstance(value, Decimal):
        amount = value
    else:
        clean = str(value).strip().replace("$", "").replace(" ", "")
        if not clean:
            return ZERO
        try:
            amount = Decimal(clean)
        except InvalidOperation as exc:
            raise ValueError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValueError("Invalid amount")
    # NUMERIC(10, 2) holds at most 8 integer digits
    if abs(amount) >= MAX_AMOUNT:
        raise ValueError("Amount is too large")
    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if abs(amount) >= MAX_AMOUNT:
        raise ValueError("Amount is too large")
    if amount < 0 and not allow_negative:
        raise ValueError("Amount must not be negative")
    return amount


def format_money(value: Optional[Decimal]) -> str:
    if value is None:
        value = ZERO
    return f"{Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP):.2f}"


def money_sum(values) -> Decimal:
    total = ZERO
    for value in values:
        total += value if value is not None else ZERO
    return total.quantize(CENT, rounding=ROUND_HALF_UP)
