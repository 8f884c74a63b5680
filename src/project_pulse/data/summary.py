"""Portfolio-level aggregation over cached project records."""
import math
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Sequence

from ..utils.constants import PROGRESS_HIGH_FROM, PROGRESS_LOW_BELOW
from .records import ProjectRecord, format_currency

_NON_NUMERIC = re.compile(r'[^0-9.\-]+')


@dataclass(frozen=True)
class ProjectSummary:
    total_projects: int
    total_budget: str
    average_progress: int
    progress_ranges: dict[str, int] = field(default_factory=dict)


def _budget_decimal(budget: str) -> Decimal:
    try:
        value = Decimal(_NON_NUMERIC.sub('', budget))
    except InvalidOperation:
        return Decimal(0)
    return value if value.is_finite() else Decimal(0)


def budget_amount(budget: str) -> float:
    """Numeric value of a formatted budget string; 0 when unparseable."""
    return float(_budget_decimal(budget))


def _total_budget_decimal(records: Sequence[ProjectRecord]) -> Decimal:
    return sum((_budget_decimal(record.budget) for record in records), Decimal(0))


def total_budget(records: Sequence[ProjectRecord]) -> float:
    return float(_total_budget_decimal(records))


def summarize(records: Sequence[ProjectRecord]) -> ProjectSummary:
    """Totals, rounded average progress and low/medium/high progress buckets."""
    count = len(records)
    average = sum(r.progress_percent for r in records) / count if count else 0.0
    ranges = {
        'low': sum(1 for r in records if r.progress_percent < PROGRESS_LOW_BELOW),
        'medium': sum(
            1 for r in records
            if PROGRESS_LOW_BELOW <= r.progress_percent < PROGRESS_HIGH_FROM
        ),
        'high': sum(1 for r in records if r.progress_percent >= PROGRESS_HIGH_FROM),
    }
    return ProjectSummary(
        total_projects=count,
        total_budget=format_currency(_total_budget_decimal(records)),
        # half-up rounding
        average_progress=math.floor(average + 0.5),
        progress_ranges=ranges,
    )
