import re
from dataclasses import dataclass

MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$", re.ASCII)
YEAR_RE = re.compile(r"^\d{4}$", re.ASCII)


@dataclass(frozen=True)
class MonthKey:
    year: int
    month: int

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.key


def parse_month_key(value: str) -> MonthKey:
    if not isinstance(value, str) or not MONTH_KEY_RE.fullmatch(value):
        raise ValueError("Invalid month format. Use YYYY-MM")
    year_str, month_str = value.split("-", 1)
    month = int(month_str)
    if not 1 <= month <= 12:
        raise ValueError("Invalid month format. Use YYYY-MM")
    return MonthKey(int(year_str), month)


def validate_year(value: str) -> str:
    if not isinstance(value, str) or not YEAR_RE.fullmatch(value):
        raise ValueError("Invalid year format. Use YYYY")
    return value


def year_prefix(year: str) -> str:
    # month keys are zero-padded, so "<year>-" matches exactly that year
    return f"{validate_year(year)}-"
