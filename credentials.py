from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import SessionLocal, session_scope
from models import PROFILE_KEY, CredentialKind, LocalState

logger = logging.getLogger(__name__)


class CredentialStore:
    """Device-local storage for the credential pair and the cached profile.

    Plain get/set/clear, no validation. Read failures are reported as a missing
    value so callers fall back to the unauthenticated path.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self.session_factory = session_factory or SessionLocal

    def _read(self, key: str) -> Optional[str]:
        try:
            with session_scope(self.session_factory) as session:
                return session.scalar(
                    select(LocalState.value).where(LocalState.key == key)
                )
        except SQLAlchemyError as exc:
            logger.warning(f"local_state_read_failed: key={key} error={exc}")
            return None

    @staticmethod
    def _write(session: Session, key: str, value: str) -> None:
        row = session.get(LocalState, key)
        if row is None:
            session.add(LocalState(key=key, value=value))
        else:
            row.value = value

    def get(self, kind: CredentialKind) -> Optional[str]:
        return self._read(kind.value)

    def set(self, kind: CredentialKind, token: str) -> None:
        with session_scope(self.session_factory) as session:
            self._write(session, kind.value, token)

    def clear(self, kind: CredentialKind) -> None:
        with session_scope(self.session_factory) as session:
            session.execute(delete(LocalState).where(LocalState.key == kind.value))

    def store_pair(self, access_token: str, refresh_token: str) -> None:
        with session_scope(self.session_factory) as session:
            self._write(session, CredentialKind.access.value, access_token)
            self._write(session, CredentialKind.refresh.value, refresh_token)

    def clear_pair(self) -> None:
        keys = [CredentialKind.access.value, CredentialKind.refresh.value]
        with session_scope(self.session_factory) as session:
            session.execute(delete(LocalState).where(LocalState.key.in_(keys)))

    def get_profile(self) -> Optional[dict[str, Any]]:
        raw = self._read(PROFILE_KEY)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cached_profile_unreadable")
            return None

    def set_profile(self, profile: dict[str, Any]) -> None:
        with session_scope(self.session_factory) as session:
            self._write(session, PROFILE_KEY, json.dumps(profile, default=str))

    def clear_profile(self) -> None:
        with session_scope(self.session_factory) as session:
            session.execute(delete(LocalState).where(LocalState.key == PROFILE_KEY))

    def clear_session(self) -> None:
        keys = [CredentialKind.access.value, CredentialKind.refresh.value, PROFILE_KEY]
        with session_scope(self.session_factory) as session:
            session.execute(delete(LocalState).where(LocalState.key.in_(keys)))
        logger.info("local_session_cleared")

    def is_authenticated(self) -> bool:
        return bool(self.get(CredentialKind.access)) and bool(
            self.get(CredentialKind.refresh)
        )
