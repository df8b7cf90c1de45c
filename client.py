"""Entry point for collaborators: one object wiring the whole data-access layer.

    async with FinanceClient.from_settings() as api:
        await api.auth.login(email, password)
        snapshot = await api.dashboard.load("this_month")
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from config import Settings, get_settings
from credentials import CredentialStore
from dashboard import DashboardService
from database import init_db
from dispatcher import RequestDispatcher
from keepalive import SessionKeepAlive
from refresher import SessionRefresher
from services import (
    AssistantService,
    AuthService,
    InsightsService,
    TransactionService,
    UserService,
)

logger = logging.getLogger(__name__)


class FinanceClient:
    def __init__(
        self,
        store: CredentialStore,
        *,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        identity_client: Optional[httpx.AsyncClient] = None,
        keepalive: bool = True,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient(
            timeout=self.settings.http_timeout_secs
        )
        self.refresher = SessionRefresher(
            store,
            api_key=self.settings.identity_api_key,
            token_url=self.settings.identity_token_url,
            client=identity_client or self.http,
        )
        self.dispatcher = RequestDispatcher(
            store,
            self.refresher,
            base_url=self.settings.api_base_url,
            client=self.http,
        )
        self.keepalive = (
            SessionKeepAlive(
                self.refresher, margin_secs=self.settings.refresh_margin_secs
            )
            if keepalive
            else None
        )
        self.auth = AuthService(self.dispatcher, store, self.keepalive)
        self.users = UserService(self.dispatcher)
        self.transactions = TransactionService(self.dispatcher)
        self.insights = InsightsService(self.dispatcher, self.transactions)
        self.assistant = AssistantService(self.dispatcher)
        self.dashboard = DashboardService(self.transactions, self.users)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FinanceClient":
        init_db()
        return cls(CredentialStore(), settings=settings)

    async def __aenter__(self) -> "FinanceClient":
        if self.keepalive is not None:
            self.keepalive.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self.keepalive is not None:
            self.keepalive.stop()
        if self._owns_http:
            await self.http.aclose()
        logger.debug("finance_client_closed")
