from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class CredentialKind(str, Enum):
    # values double as the storage keys
    access = "authToken"
    refresh = "refreshToken"


PROFILE_KEY = "user"


class Granularity(str, Enum):
    day = "day"
    month = "month"


class LocalState(Base):
    """Device-local key/value row: credentials and the cached user profile."""

    __tablename__ = "local_state"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
