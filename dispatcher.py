from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping, Optional

import httpx
from pydantic import TypeAdapter

from config import get_settings
from credentials import CredentialStore
from errors import (
    ConnectivityError,
    ParseError,
    RequestError,
    SessionExpired,
    ValidationError,
)
from models import CredentialKind
from refresher import SessionRefresher
from schemas import ResponseEnvelope

logger = logging.getLogger(__name__)


@lru_cache(maxsize=64)
def _adapter(response_model: Any) -> TypeAdapter:
    return TypeAdapter(response_model)


class Attempt(Enum):
    FIRST_ATTEMPT = "first_attempt"
    RETRIED_ONCE = "retried_once"

    @property
    def may_refresh(self) -> bool:
        return self is Attempt.FIRST_ATTEMPT


class RequestDispatcher:
    """Authenticated calls against ``<base_url>/api``.

    Every response is unwrapped from the standard envelope. A 401 on the first
    attempt triggers one credential refresh and one retry; the retry runs as
    ``Attempt.RETRIED_ONCE`` and can never refresh again.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: SessionRefresher,
        *,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.refresher = refresher
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.http_timeout_secs)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/api{endpoint}"

    async def call(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        response_model: Any = None,
        attempt: Attempt = Attempt.FIRST_ATTEMPT,
    ) -> Any:
        token = self.store.get(CredentialKind.access)
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        if token:
            request_headers["Authorization"] = f"Bearer {token}"
        query = {k: v for k, v in (params or {}).items() if v not in (None, "")}

        logger.debug(f"api_request: method={method} endpoint={endpoint} attempt={attempt.value}")
        try:
            response = await self.client.request(
                method,
                self._url(endpoint),
                params=query or None,
                json=json,
                headers=request_headers,
            )
        except httpx.TransportError as exc:
            logger.warning(
                f"api_unreachable: endpoint={endpoint} error={exc.__class__.__name__}"
            )
            raise ConnectivityError() from exc

        body = self._read_json(response)

        # any JSON answer to a 401 is an auth failure, envelope or not
        if response.status_code == 401:
            if attempt.may_refresh and await self._recover(token):
                logger.info(f"api_retry_after_refresh: endpoint={endpoint}")
                return await self.call(
                    endpoint,
                    method=method,
                    params=params,
                    json=json,
                    headers=headers,
                    response_model=response_model,
                    attempt=Attempt.RETRIED_ONCE,
                )
            self.store.clear_session()
            logger.warning(f"session_expired: endpoint={endpoint} attempt={attempt.value}")
            raise SessionExpired()

        envelope = self._parse_envelope(body, response.status_code)
        if response.is_success and envelope.success:
            return self._coerce(envelope.data, response_model, response.status_code)

        if not envelope.success and envelope.message:
            raise ValidationError(
                envelope.message,
                status_code=response.status_code,
                errors=envelope.errors,
            )
        raise RequestError(
            envelope.message or f"HTTP error! status: {response.status_code}",
            status_code=response.status_code,
        )

    async def _recover(self, sent_token: Optional[str]) -> bool:
        current = self.store.get(CredentialKind.access)
        if current and current != sent_token:
            # another call already rotated the credentials while this one was in flight
            logger.info("session_refresh_already_rotated")
            return True
        return await self.refresher.refresh()

    @staticmethod
    def _read_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.warning(
                f"api_unparseable_response: status={response.status_code} error={exc.__class__.__name__}"
            )
            raise ParseError(status_code=response.status_code) from exc

    @staticmethod
    def _parse_envelope(body: Any, status_code: int) -> ResponseEnvelope[Any]:
        try:
            return ResponseEnvelope[Any].model_validate(body)
        except ValueError as exc:
            logger.warning(f"api_malformed_envelope: status={status_code}")
            raise ParseError(status_code=status_code) from exc

    @staticmethod
    def _coerce(data: Any, response_model: Any, status_code: int) -> Any:
        if response_model is None:
            return data
        try:
            return _adapter(response_model).validate_python(data)
        except ValueError as exc:
            logger.warning(f"api_unexpected_payload: model={response_model!r}")
            raise ParseError(status_code=status_code) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
