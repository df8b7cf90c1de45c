from datetime import date, datetime, timezone
from decimal import Decimal

from models import TransactionType
from schemas import (
    AnalysisResult,
    BudgetSummary,
    InsightBlock,
    InsightKind,
    TransactionIn,
    TransactionRecord,
)


def test_transaction_record_accepts_backend_timestamp_shapes() -> None:
    iso = TransactionRecord.model_validate({"date": "2024-01-05T10:00:00.000Z"})
    assert iso.date == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)

    firestore = TransactionRecord.model_validate({"date": {"_seconds": 1704448800}})
    assert firestore.date == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)

    epoch_ms = TransactionRecord.model_validate({"date": 1704448800000})
    assert epoch_ms.date == firestore.date

    date_only = TransactionRecord.model_validate({"date": "2024-01-05"})
    assert date_only.date == datetime(2024, 1, 5)

    assert TransactionRecord.model_validate({"date": "05/01/2024"}).date is None


def test_transaction_record_coerces_loose_fields() -> None:
    record = TransactionRecord.model_validate(
        {"id": 42, "type": "Expense", "amount": "19.99", "category": "  Food "}
    )
    assert record.id == "42"
    assert record.type == TransactionType.expense
    assert record.amount == Decimal("19.99")
    assert record.category == "Food"

    odd = TransactionRecord.model_validate({"type": "transfer", "amount": "NaN"})
    assert odd.type is None
    assert odd.amount == Decimal("0")


def test_transaction_in_serializes_amount_as_number() -> None:
    payload = TransactionIn(
        type=TransactionType.expense,
        amount=Decimal("12.50"),
        category="Food",
        date=date(2024, 3, 1),
    ).model_dump(mode="json", by_alias=True, exclude_none=True)
    assert payload == {
        "type": "expense",
        "amount": 12.5,
        "category": "Food",
        "date": "2024-03-01",
    }


def test_budget_summary_reads_camel_case() -> None:
    summary = BudgetSummary.model_validate(
        {
            "period": {"month": 3, "year": 2024, "daysRemaining": 16},
            "budget": {"monthly": 1000, "remaining": 750.5, "percentageUsed": 24.95},
            "categoryBreakdown": [
                {"category": "Food", "amount": 200, "percentage": 80},
            ],
        }
    )
    assert summary.period.days_remaining == 16
    assert summary.budget.remaining == Decimal("750.5")
    assert summary.category_budgets == {"Food": Decimal("200")}
    assert summary.category_breakdown[0].percentage == "80"


def test_insight_block_tags_kind_and_keeps_extras() -> None:
    block = InsightBlock.model_validate(
        {
            "type": "Savings Progress",
            "title": "Nice",
            "message": "You saved 20%",
            "priority": "urgent",
            "confidence": 0.9,
        }
    )
    assert block.kind == InsightKind.savings_progress
    assert block.priority is None
    assert block.extras == {"confidence": 0.9}

    by_icon = InsightBlock.model_validate({"type": "whatever", "icon": "risk"})
    assert by_icon.kind == InsightKind.risk

    unknown = InsightBlock.model_validate({"type": "horoscope", "message": None})
    assert unknown.kind == InsightKind.unknown
    assert unknown.message == ""


def test_analysis_result_normalises_response_shapes() -> None:
    wrapped = AnalysisResult.from_payload(
        {
            "analysis": {
                "insights": [{"type": "spending", "message": "Up 5%"}, "noise"],
                "summary": {"totalTransactions": 3, "totalIncome": 100},
            },
            "metadata": {"analyzedTransactions": 3, "mlModel": "v2"},
        }
    )
    assert [b.kind for b in wrapped.insights] == [InsightKind.spending]
    assert wrapped.summary.total_transactions == 3
    assert wrapped.metadata.ml_model == "v2"
    assert wrapped.has_data is True

    bare_list = AnalysisResult.from_payload([{"type": "greeting", "message": "Hi"}])
    assert [b.kind for b in bare_list.insights] == [InsightKind.greeting]
    assert bare_list.summary is None

    explicit_empty = AnalysisResult.from_payload(
        {"insights": [{"type": "tip"}], "hasData": False}
    )
    assert explicit_empty.has_data is False
    assert explicit_empty.insights[0].kind == InsightKind.unknown

    assert AnalysisResult.from_payload(None).insights == []
