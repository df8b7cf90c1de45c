from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from config import get_settings
from credentials import CredentialStore
from dispatcher import RequestDispatcher
from errors import ApiError
from schemas import (
    AnalysisResult,
    AssistantReply,
    AuthSession,
    BudgetSummary,
    BudgetUpdateIn,
    ChatReply,
    ConversationEntry,
    InsightHistory,
    ProfileUpdateIn,
    RegisteredUser,
    TransactionIn,
    TransactionPage,
    TransactionRecord,
    UserProfile,
    VerifiedUser,
)

if TYPE_CHECKING:  # pragma: no cover
    from keepalive import SessionKeepAlive

logger = logging.getLogger(__name__)


def _payload(model) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuthService:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        store: CredentialStore,
        keepalive: Optional["SessionKeepAlive"] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.store = store
        self.keepalive = keepalive

    async def login(self, email: str, password: str) -> AuthSession:
        session = await self.dispatcher.call(
            "/auth/login",
            method="POST",
            json={"email": email, "password": password},
            response_model=AuthSession,
        )
        self.store.store_pair(session.id_token, session.refresh_token)
        self.store.set_profile(
            {"uid": session.uid, "email": session.email, "name": session.name}
        )
        if self.keepalive is not None and session.expires_in:
            self.keepalive.schedule(session.expires_in)
        logger.info(f"login_succeeded: uid={session.uid}")
        return session

    async def register(self, email: str, password: str, name: str) -> AuthSession:
        user = await self.dispatcher.call(
            "/auth/register",
            method="POST",
            json={"email": email, "password": password, "name": name},
            response_model=RegisteredUser,
        )
        logger.info(f"register_succeeded: uid={user.uid}")
        return await self.login(email, password)

    async def logout(self) -> None:
        try:
            await self.dispatcher.call("/auth/logout", method="POST")
        except ApiError as exc:
            # local state is cleared below whatever the server said
            logger.warning(f"logout_failed: error={exc.message!r}")
        finally:
            if self.keepalive is not None:
                self.keepalive.cancel()
            self.store.clear_session()

    async def verify(self) -> VerifiedUser:
        return await self.dispatcher.call("/auth/verify", response_model=VerifiedUser)


class UserService:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self.dispatcher = dispatcher

    async def get_profile(self) -> UserProfile:
        return await self.dispatcher.call("/user/profile", response_model=UserProfile)

    async def update_profile(self, data: ProfileUpdateIn) -> Any:
        return await self.dispatcher.call(
            "/user/profile", method="PUT", json=_payload(data)
        )

    async def get_budget(self, month: int, year: int) -> BudgetSummary:
        return await self.dispatcher.call(
            "/user/budget",
            params={"month": month, "year": year},
            response_model=BudgetSummary,
        )

    async def update_budget(self, data: BudgetUpdateIn) -> Any:
        return await self.dispatcher.call(
            "/user/budget", method="POST", json=_payload(data)
        )

    async def get_settings(self) -> Any:
        return await self.dispatcher.call("/user/settings")

    async def update_settings(self, data: dict[str, Any]) -> Any:
        return await self.dispatcher.call("/user/settings", method="PUT", json=data)


class TransactionService:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self.dispatcher = dispatcher

    async def get_page(
        self,
        *,
        type: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> TransactionPage:
        params = {
            "type": type,
            "page": page,
            "limit": limit,
            "startDate": start_date,
            "endDate": end_date,
        }
        return await self.dispatcher.call(
            "/transactions", params=params, response_model=TransactionPage
        )

    async def get_all(
        self,
        *,
        type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[TransactionRecord]:
        limit = limit or get_settings().page_limit
        records: list[TransactionRecord] = []
        page = 1
        while True:
            result = await self.get_page(
                type=type,
                page=page,
                limit=limit,
                start_date=start_date,
                end_date=end_date,
            )
            records.extend(result.transactions)
            total_pages = result.pagination.total_pages if result.pagination else 1
            if page >= total_pages or not result.transactions:
                break
            page += 1
        logger.debug(f"transactions_fetched: count={len(records)} pages={page}")
        return records

    async def create(self, data: TransactionIn) -> Any:
        return await self.dispatcher.call(
            "/transactions", method="POST", json=_payload(data)
        )

    async def update(self, transaction_id: str, data: TransactionIn) -> Any:
        return await self.dispatcher.call(
            f"/transactions/{transaction_id}", method="PUT", json=_payload(data)
        )

    async def delete(self, transaction_id: str) -> Any:
        return await self.dispatcher.call(
            f"/transactions/{transaction_id}", method="DELETE"
        )


class InsightsService:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        transactions: Optional[TransactionService] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.transactions = transactions or TransactionService(dispatcher)

    async def analyze(
        self,
        *,
        transactions: Optional[list[TransactionRecord]] = None,
        period: Optional[str] = None,
    ) -> AnalysisResult:
        payload: dict[str, Any] = {}
        if transactions:
            payload["transactions"] = [
                record.model_dump(mode="json", exclude_none=True)
                for record in transactions
            ]
        if period:
            payload["period"] = period
        raw = await self.dispatcher.call("/insights/analyze", method="POST", json=payload)
        return AnalysisResult.from_payload(raw)

    async def analyze_recent(self, period: str = "last_30_days", *, limit: int = 200) -> AnalysisResult:
        page = await self.transactions.get_page(limit=limit)
        return await self.analyze(transactions=page.transactions, period=period)

    async def chat(self, message: str) -> ChatReply:
        return await self.dispatcher.call(
            "/insights/chat",
            method="POST",
            json={"message": message},
            response_model=ChatReply,
        )

    async def history(
        self, *, page: Optional[int] = None, limit: Optional[int] = None
    ) -> InsightHistory:
        return await self.dispatcher.call(
            "/insights/history",
            params={"page": page, "limit": limit},
            response_model=InsightHistory,
        )


class AssistantService:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self.dispatcher = dispatcher

    async def chat(
        self, message: str, conversation_history: Optional[list[ConversationEntry]] = None
    ) -> AssistantReply:
        history = [
            entry.model_dump(mode="json", by_alias=True, exclude_none=True)
            for entry in conversation_history or []
        ]
        return await self.dispatcher.call(
            "/ai/chat",
            method="POST",
            json={"message": message, "conversationHistory": history},
            response_model=AssistantReply,
        )
