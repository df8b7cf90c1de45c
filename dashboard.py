from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Optional, Union

from aggregation import Summary, summarize
from config import get_settings
from periods import AnalysisWindow, local_timezone, previous_window, resolve_window
from schemas import BudgetSummary, TransactionRecord, UserProfile
from services import TransactionService, UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardStats:
    total_income: Decimal
    total_expenses: Decimal
    savings: Decimal
    budget: Decimal


@dataclass(frozen=True)
class DashboardSnapshot:
    window: AnalysisWindow
    currency: str
    stats: DashboardStats
    summary: Summary
    budget: BudgetSummary
    profile: UserProfile
    previous_available: bool


class DashboardService:
    def __init__(
        self,
        transactions: TransactionService,
        users: UserService,
        *,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.transactions = transactions
        self.users = users
        self.tz = tz

    async def _fetch(self, window: AnalysisWindow) -> list[TransactionRecord]:
        params = window.query_params()
        return await self.transactions.get_all(
            start_date=params.get("startDate"), end_date=params.get("endDate")
        )

    async def _fetch_previous(
        self, window: Optional[AnalysisWindow]
    ) -> Optional[list[TransactionRecord]]:
        """Baseline for trends only; a failure here must not sink the dashboard."""
        if window is None:
            return None
        try:
            return await self._fetch(window)
        except Exception as exc:
            logger.warning(
                f"previous_window_unavailable: window={window.slug} error={exc!r}"
            )
            return None

    async def load(
        self,
        window: Union[str, AnalysisWindow],
        *,
        now: Optional[datetime] = None,
    ) -> DashboardSnapshot:
        tz = self.tz or local_timezone()
        resolved = resolve_window(window, now=now, tz=tz)
        today = (now or datetime.now(tz)).astimezone(tz)

        current, budget, profile, previous = await asyncio.gather(
            self._fetch(resolved),
            self.users.get_budget(today.month, today.year),
            self.users.get_profile(),
            self._fetch_previous(previous_window(resolved)),
        )

        currency = profile.currency or get_settings().currency
        summary = summarize(
            current,
            resolved,
            previous_transactions=previous,
            budget_remaining=budget.budget.remaining,
            currency=currency,
            tz=tz,
        )
        monthly = budget.budget.monthly
        if monthly is None:
            monthly = profile.monthly_budget
        if monthly is None:
            monthly = Decimal("0")
        stats = DashboardStats(
            total_income=summary.totals.income,
            total_expenses=summary.totals.expense,
            savings=summary.totals.savings,
            budget=monthly,
        )
        logger.info(
            f"dashboard_loaded: window={resolved.slug} transactions={len(current)} "
            f"buckets={len(summary.buckets)} previous={previous is not None}"
        )
        return DashboardSnapshot(
            window=resolved,
            currency=currency,
            stats=stats,
            summary=summary,
            budget=budget,
            profile=profile,
            previous_available=previous is not None,
        )
