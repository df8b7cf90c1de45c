"""Time-windowed summaries over fetched transactions.

Everything here is synchronous and works on in-memory records: totals,
expense rollups per category, day/month buckets for charts and the
period-over-period trend figures. Malformed records are skipped, never
raised on; only an unrecognised window name raises ``UnknownWindow``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from formatting import TrendDelta, day_label, format_trend, month_label
from models import Granularity, TransactionType
from periods import AnalysisWindow, local_timezone, resolve_window
from schemas import TransactionRecord

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

RecordLike = Union[TransactionRecord, Mapping[str, Any]]


@dataclass(frozen=True)
class Totals:
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def savings(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class CategoryAmount:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class TimeBucket:
    key: str
    label: str
    income: Decimal
    expense: Decimal


@dataclass
class _BucketTotals:
    label: str
    sort_value: float
    income: Decimal = ZERO
    expense: Decimal = ZERO


@dataclass(frozen=True)
class TrendFigures:
    income: Decimal
    expense: Decimal
    savings: Decimal
    budget: Decimal


@dataclass(frozen=True)
class Summary:
    window: AnalysisWindow
    totals: Totals
    category_rollup: list[CategoryAmount]
    buckets: list[TimeBucket]
    figures: TrendFigures
    trends: dict[str, TrendDelta] = field(default_factory=dict)


def coerce_records(transactions: Optional[Iterable[RecordLike]]) -> list[TransactionRecord]:
    records: list[TransactionRecord] = []
    skipped = 0
    for raw in transactions or []:
        if isinstance(raw, TransactionRecord):
            records.append(raw)
            continue
        if not isinstance(raw, Mapping):
            skipped += 1
            continue
        try:
            records.append(TransactionRecord.model_validate(raw))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.debug(f"aggregation_skipped_records: count={skipped}")
    return records


def compute_totals(records: Iterable[TransactionRecord]) -> Totals:
    income = ZERO
    expense = ZERO
    for record in records:
        if record.type == TransactionType.income:
            income += record.amount
        elif record.type == TransactionType.expense:
            expense += record.amount
    return Totals(income=income, expense=expense)


def category_rollup(records: Iterable[TransactionRecord]) -> list[CategoryAmount]:
    """Expense sums per category in first-seen order; uncategorised rows are left out."""
    sums: dict[str, Decimal] = {}
    for record in records:
        if record.type != TransactionType.expense or record.category is None:
            continue
        sums[record.category] = sums.get(record.category, ZERO) + record.amount
    return [CategoryAmount(category, amount) for category, amount in sums.items()]


def _localize(moment: datetime, tz: tzinfo) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def _start_instant(day: date, tz: tzinfo) -> float:
    return datetime.combine(day, time.min, tzinfo=tz).timestamp()


def build_buckets(
    records: Iterable[TransactionRecord],
    granularity: Granularity,
    tz: tzinfo,
) -> list[TimeBucket]:
    buckets: dict[str, _BucketTotals] = {}
    for record in records:
        if record.date is None or record.type is None:
            continue
        local_day = _localize(record.date, tz).date()
        if granularity == Granularity.month:
            start = local_day.replace(day=1)
            key = f"{start.year:04d}-{start.month:02d}"
            label = month_label(start)
        else:
            start = local_day
            key = start.isoformat()
            label = day_label(start)

        bucket = buckets.get(key)
        if bucket is None:
            bucket = _BucketTotals(label=label, sort_value=_start_instant(start, tz))
            buckets[key] = bucket
        if record.type == TransactionType.income:
            bucket.income += record.amount
        else:
            bucket.expense += record.amount

    ordered = sorted(buckets.items(), key=lambda item: item[1].sort_value)
    return [
        TimeBucket(key=key, label=b.label, income=b.income, expense=b.expense)
        for key, b in ordered
    ]


def trend_figures(
    current: Totals,
    previous: Optional[Totals] = None,
    budget_remaining: Optional[Decimal] = None,
) -> TrendFigures:
    previous = previous or Totals()
    return TrendFigures(
        income=current.income - previous.income,
        # spending less than last period is the favourable direction
        expense=previous.expense - current.expense,
        savings=current.savings - previous.savings,
        budget=budget_remaining if budget_remaining is not None else ZERO,
    )


def format_trends(figures: TrendFigures, currency: str = "USD") -> dict[str, TrendDelta]:
    return {
        "income": format_trend(figures.income, currency),
        "expense": format_trend(figures.expense, currency),
        "savings": format_trend(figures.savings, currency),
        "budget": format_trend(figures.budget, currency),
    }


def summarize(
    transactions: Optional[Iterable[RecordLike]],
    window: Union[str, AnalysisWindow],
    *,
    previous_transactions: Optional[Iterable[RecordLike]] = None,
    budget_remaining: Optional[Decimal] = None,
    currency: str = "USD",
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> Summary:
    resolved = resolve_window(window, now=now, tz=tz)
    if tz is None:
        tz = resolved.start.tzinfo if resolved.is_bounded else local_timezone()

    records = coerce_records(transactions)
    totals = compute_totals(records)
    previous_totals = None
    if previous_transactions is not None:
        previous_totals = compute_totals(coerce_records(previous_transactions))
    figures = trend_figures(totals, previous_totals, budget_remaining)

    return Summary(
        window=resolved,
        totals=totals,
        category_rollup=category_rollup(records),
        buckets=build_buckets(records, resolved.granularity, tz),
        figures=figures,
        trends=format_trends(figures, currency),
    )
