from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from config import get_settings
from credentials import CredentialStore
from models import CredentialKind
from schemas import TokenExchange

logger = logging.getLogger(__name__)


class SessionRefresher:
    """Exchanges the stored refresh credential for a fresh credential pair.

    All-or-nothing: a successful exchange writes both new credentials, any
    failure clears both. Concurrent ``refresh()`` calls share one in-flight
    exchange and all receive its result.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        api_key: Optional[str] = None,
        token_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.api_key = api_key if api_key is not None else settings.identity_api_key
        self.token_url = token_url or settings.identity_token_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.http_timeout_secs)
        self._inflight: Optional[asyncio.Task[bool]] = None
        self.last_expires_in: Optional[int] = None

    async def refresh(self) -> bool:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._run_exchange())
        else:
            logger.info("session_refresh_joined_inflight")
        # a cancelled waiter must not cancel the exchange the others wait on
        return await asyncio.shield(self._inflight)

    async def _run_exchange(self) -> bool:
        try:
            return await self._exchange()
        finally:
            self._inflight = None

    def _fail(self, reason: str) -> bool:
        logger.warning(f"session_refresh_failed: reason={reason}")
        self.store.clear_pair()
        self.last_expires_in = None
        return False

    async def _exchange(self) -> bool:
        refresh_token = self.store.get(CredentialKind.refresh)
        if not refresh_token or not self.api_key:
            logger.info(
                "session_refresh_skipped: "
                f"has_refresh_token={bool(refresh_token)} has_api_key={bool(self.api_key)}"
            )
            return False

        logger.info("session_refresh_started")
        try:
            response = await self.client.post(
                self.token_url,
                params={"key": self.api_key},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as exc:
            return self._fail(f"transport {exc.__class__.__name__}")

        if not response.is_success:
            return self._fail(f"status={response.status_code}")

        try:
            exchange = TokenExchange.model_validate(response.json())
        except ValueError:
            # JSONDecodeError and pydantic's ValidationError are both ValueErrors
            return self._fail("malformed response")

        self.store.store_pair(exchange.id_token, exchange.refresh_token)
        self.last_expires_in = exchange.expires_in
        logger.info(f"session_refresh_succeeded: expires_in={exchange.expires_in}")
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
