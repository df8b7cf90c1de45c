import datetime as dt
import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Generic, Literal, Mapping, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from models import TransactionType

T = TypeVar("T")

# amounts go over the wire as JSON numbers
Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


def to_decimal(value: Any) -> Decimal:
    """Lenient amount coercion: anything non-numeric counts as zero."""
    if isinstance(value, bool) or value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return Decimal("0")
    else:
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


def to_datetime(value: Any) -> Optional[dt.datetime]:
    """Parse the timestamp shapes the backend emits, ``None`` when unparseable.

    Accepts ISO strings (date-only or full, ``Z`` suffix included), epoch
    milliseconds, Firestore ``{"_seconds": ...}`` maps and date objects.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    if isinstance(value, (int, float)):
        try:
            return dt.datetime.fromtimestamp(value / 1000, tz=dt.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, Mapping):
        seconds = value.get("_seconds", value.get("seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return to_datetime(seconds * 1000)
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return dt.datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseEnvelope(BaseModel, Generic[T]):
    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    timestamp: Optional[str] = None
    errors: Optional[list[Any]] = None


class TokenExchange(BaseModel):
    id_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_in: Optional[int] = None


class TransactionRecord(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore"
    )

    id: Optional[str] = None
    type: Optional[TransactionType] = None
    amount: Money = Decimal("0")
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value: Any) -> Optional[TransactionType]:
        if isinstance(value, TransactionType):
            return value
        try:
            return TransactionType(str(value).strip().lower())
        except ValueError:
            return None

    @field_validator("amount", mode="before")
    @classmethod
    def _numeric_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("category", "description", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Optional[dt.datetime]:
        return to_datetime(value)


class TransactionIn(CamelModel):
    type: TransactionType
    amount: Money = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=200)
    date: dt.date


class TransactionSummary(CamelModel):
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_savings: Decimal = Decimal("0")
    count: int = 0


class Pagination(CamelModel):
    page: int = 1
    limit: int = 0
    total: int = 0
    total_pages: int = 1


class TransactionPage(CamelModel):
    transactions: list[TransactionRecord] = Field(default_factory=list)
    summary: Optional[TransactionSummary] = None
    pagination: Optional[Pagination] = None

    @field_validator("transactions", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, Mapping)]


class AuthSession(CamelModel):
    uid: str
    email: str
    name: Optional[str] = None
    id_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_in: Optional[int] = None
    profile: Optional[dict[str, Any]] = None


class RegisteredUser(CamelModel):
    uid: str
    email: str
    name: Optional[str] = None


class VerifiedUser(CamelModel):
    uid: str
    email: str
    email_verified: bool = False
    name: Optional[str] = None


class UserProfile(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    uid: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    currency: Optional[str] = None
    monthly_budget: Optional[Decimal] = None
    savings_goal: Optional[Decimal] = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProfileUpdateIn(CamelModel):
    name: str = ""
    currency: str = Field(default="USD", min_length=3, max_length=3)
    monthly_budget: Money = Field(default=Decimal("0"), ge=0)
    savings_goal: Money = Field(default=Decimal("0"), ge=0)
    preferences: dict[str, Any] = Field(default_factory=dict)


class CategoryShare(CamelModel):
    category: str
    amount: Decimal = Decimal("0")
    percentage: Optional[str] = None

    @field_validator("percentage", mode="before")
    @classmethod
    def _percentage_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class BudgetPeriod(CamelModel):
    month: int
    year: int
    days_remaining: int = 0


class BudgetFigures(CamelModel):
    monthly: Optional[Decimal] = None
    spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    percentage_used: Decimal = Decimal("0")
    daily_budget: Decimal = Decimal("0")
    status: str = ""
    savings_goal: Optional[Decimal] = None


class BudgetSummary(CamelModel):
    period: Optional[BudgetPeriod] = None
    budget: BudgetFigures = Field(default_factory=BudgetFigures)
    category_breakdown: list[CategoryShare] = Field(default_factory=list)

    @property
    def category_budgets(self) -> dict[str, Decimal]:
        return {share.category: share.amount for share in self.category_breakdown}


class BudgetUpdateIn(CamelModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1970, le=3000)
    monthly_budget: Money = Field(default=Decimal("0"), ge=0)
    savings_goal: Money = Field(default=Decimal("0"), ge=0)
    category_budgets: dict[str, Money] = Field(default_factory=dict)


class InsightKind(str, Enum):
    greeting = "greeting"
    recommendation = "recommendation"
    summary = "summary"
    spending_overview = "spending_overview"
    spending = "spending"
    savings = "savings"
    savings_progress = "savings_progress"
    top_category = "top_category"
    risk = "risk"
    opportunity = "opportunity"
    unknown = "unknown"


def _normalize_kind_key(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value:
        return None
    return re.sub(r"[^a-z]", "_", value.lower())


def insight_kind(icon: Any, type_: Any) -> InsightKind:
    """Icon key wins over type key; anything unrecognised is ``unknown``."""
    for candidate in (_normalize_kind_key(icon), _normalize_kind_key(type_)):
        if candidate is None:
            continue
        try:
            return InsightKind(candidate)
        except ValueError:
            continue
    return InsightKind.unknown


class InsightBlock(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    kind: InsightKind = InsightKind.unknown
    type: Optional[str] = None
    icon: Optional[str] = None
    title: Optional[str] = None
    message: str = ""
    priority: Optional[Literal["low", "medium", "high"]] = None
    data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _tag_kind(cls, values: Any) -> Any:
        if not isinstance(values, Mapping):
            return values
        values = dict(values)
        values["kind"] = insight_kind(values.get("icon"), values.get("type"))
        if values.get("priority") not in (None, "low", "medium", "high"):
            values["priority"] = None
        if not isinstance(values.get("data", {}), Mapping):
            values["data"] = {}
        if values.get("message") is None:
            values["message"] = ""
        return values

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class AnalysisSummary(CamelModel):
    total_transactions: int = 0
    total_expenses: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_savings: Decimal = Decimal("0")
    top_categories: list[CategoryShare] = Field(default_factory=list)


class AnalysisMetadata(CamelModel):
    analyzed_transactions: Optional[int] = None
    generated_at: Optional[str] = None
    ml_model: Optional[str] = None


class AnalysisResult(BaseModel):
    insights: list[InsightBlock] = Field(default_factory=list)
    summary: Optional[AnalysisSummary] = None
    metadata: Optional[AnalysisMetadata] = None
    has_data: bool = False

    @classmethod
    def from_payload(cls, raw: Any) -> "AnalysisResult":
        """Normalise the analyze response, which is either
        ``{analysis: {...}, metadata}``, the analysis object itself, or a bare
        list of insight blocks."""
        analysis = raw.get("analysis", raw) if isinstance(raw, Mapping) else raw
        if isinstance(analysis, Mapping) and isinstance(analysis.get("insights"), list):
            blocks = analysis["insights"]
        elif isinstance(raw, list):
            blocks = raw
        else:
            blocks = []
        blocks = [block for block in blocks if isinstance(block, Mapping)]

        summary = None
        has_data = bool(blocks)
        if isinstance(analysis, Mapping):
            if isinstance(analysis.get("summary"), Mapping):
                summary = analysis["summary"]
            if analysis.get("hasData") is not None:
                has_data = bool(analysis["hasData"])
        metadata = None
        if isinstance(raw, Mapping) and isinstance(raw.get("metadata"), Mapping):
            metadata = raw["metadata"]

        return cls.model_validate(
            {
                "insights": blocks,
                "summary": summary,
                "metadata": metadata,
                "has_data": has_data,
            }
        )


class ChatReply(CamelModel):
    response: str
    suggestions: list[str] = Field(default_factory=list)


class InsightHistory(CamelModel):
    insights: list[dict[str, Any]] = Field(default_factory=list)
    pagination: Optional[dict[str, Any]] = None


class ConversationEntry(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[str] = None


class AssistantReply(CamelModel):
    message: str
    conversation_history: list[ConversationEntry] = Field(default_factory=list)
    timestamp: Optional[str] = None
