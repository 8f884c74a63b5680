"""Parsing of raw sheet rows into project records.

Parsing is pure and never raises on cell contents: unparseable dates and
budgets pass through as the original text, unparseable progress reads as 0.
"""
import math
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional, Sequence, Union

from ..utils.constants import (
    COL_BUDGET,
    COL_LAST_UPDATED,
    COL_MANAGER,
    COL_NAME,
    COL_NOTES,
    COL_PLAN_LINK,
    COL_PROGRESS,
)

DATE_FORMATS = (
    '%Y-%m-%d',
    '%Y/%m/%d',
    '%m/%d/%Y',
    '%m/%d/%y',
    '%B %d, %Y',
    '%b %d, %Y',
    '%d %B %Y',
    '%d %b %Y',
)

_NON_NUMERIC = re.compile(r'[^0-9.\-]+')
_KEY_CHARS = re.compile(r'[^a-z0-9]+')


@dataclass(frozen=True)
class ProjectRecord:
    """One project row of the dashboard sheet.

    ``id`` is the 1-based position among retained rows of a single fetch and
    must not be persisted across fetches; ``key`` is derived from the project
    name and survives reordering upstream.
    """

    id: int
    name: str
    manager_name: str
    last_updated_on: Union[date, str, None]
    budget: str
    progress_percent: float
    plan_link: str
    notes: str
    raw_row: tuple[str, ...]
    key: str


def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row) or row[index] is None:
        return ''
    return str(row[index])


def parse_date(value: Any) -> Union[date, str, None]:
    """Parse a date cell; unrecognised text is returned unchanged."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return str(value)


def has_currency_symbol(text: str) -> bool:
    return any(unicodedata.category(ch) == 'Sc' for ch in text)


def format_currency(amount: Union[Decimal, float, int]) -> str:
    """Format as whole US dollars, e.g. ``$1,000`` or ``-$1,000``.

    Non-finite amounts are returned as plain text.
    """
    value = Decimal(str(amount))
    if not value.is_finite():
        return str(amount)
    with localcontext() as ctx:
        # room for every integer digit plus a rounding carry
        ctx.prec = max(ctx.prec, value.adjusted() + 2)
        rounded = value.quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        return '$0'
    if rounded < 0:
        return f'-${rounded.copy_abs():,}'
    return f'${rounded:,}'


def parse_budget(value: Any) -> str:
    """Normalise a budget cell into a currency string."""
    text = '' if value is None else str(value)
    if not text.strip():
        return '$0'
    if has_currency_symbol(text):
        return text

    stripped = _NON_NUMERIC.sub('', text)
    try:
        amount = Decimal(stripped)
    except InvalidOperation:
        return text
    return format_currency(amount)


def parse_progress(value: Any) -> float:
    """Parse a progress cell into a percentage clamped to [0, 100]."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        progress = float(value)
    else:
        text = str(value).strip()
        if text.endswith('%'):
            text = text[:-1].strip()
        try:
            progress = float(text)
        except ValueError:
            return 0.0
    if math.isnan(progress):
        return 0.0
    return min(max(progress, 0.0), 100.0)


def make_key(name: str, taken: set[str]) -> str:
    """Slug of the project name, suffixed until unique within ``taken``."""
    base = _KEY_CHARS.sub('-', name.lower()).strip('-') or 'project'
    key = base
    suffix = 2
    while key in taken:
        key = f'{base}-{suffix}'
        suffix += 1
    taken.add(key)
    return key


def parse_rows(raw_rows: Optional[Sequence[Sequence[Any]]]) -> list[ProjectRecord]:
    """Convert raw sheet rows into project records.

    The first row is the header and is always discarded. Rows whose first
    cell is blank are dropped before ids are assigned.

    Args:
        raw_rows: Rows as returned by the Sheets API, header included.

    Returns:
        Records in sheet order with ids 1..n.
    """
    if not raw_rows or len(raw_rows) < 2:
        return []

    records = []
    taken: set[str] = set()
    for row in raw_rows[1:]:
        if not row:
            continue
        name = _cell(row, COL_NAME)
        if not name.strip():
            continue

        records.append(ProjectRecord(
            id=len(records) + 1,
            name=name,
            manager_name=_cell(row, COL_MANAGER),
            last_updated_on=parse_date(row[COL_LAST_UPDATED] if len(row) > COL_LAST_UPDATED else None),
            budget=parse_budget(row[COL_BUDGET] if len(row) > COL_BUDGET else None),
            progress_percent=parse_progress(row[COL_PROGRESS] if len(row) > COL_PROGRESS else None),
            plan_link=_cell(row, COL_PLAN_LINK),
            notes=_cell(row, COL_NOTES),
            raw_row=tuple('' if cell is None else str(cell) for cell in row),
            key=make_key(name, taken),
        ))
    return records
