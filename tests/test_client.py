import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

from client import FinanceClient
from config import Settings
from fake_backend import BASE_URL, BackendState, backend_client, make_store

UTC = ZoneInfo("UTC")


def make_settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        api_base_url=BASE_URL,
        identity_api_key=None,
        identity_token_url=f"{BASE_URL}/token",
        timezone="UTC",
        http_timeout_secs=5.0,
        refresh_margin_secs=300,
        currency="USD",
        page_limit=100,
    )


def test_client_wires_login_dashboard_and_logout() -> None:
    state = BackendState()
    state.transactions = [
        {"id": "m1", "type": "expense", "amount": 42, "category": "Food", "date": "2024-03-02T10:00:00+00:00"},
    ]
    store = make_store()

    async def scenario():
        async with backend_client(state) as http:
            async with FinanceClient(
                store, settings=make_settings(), http_client=http, keepalive=False
            ) as api:
                await api.auth.login("ada@example.com", "secret")
                api.dashboard.tz = UTC
                snapshot = await api.dashboard.load(
                    "this_month", now=datetime(2024, 3, 15, tzinfo=UTC)
                )
                await api.auth.logout()
                return snapshot

    snapshot = asyncio.run(scenario())

    assert snapshot.stats.total_expenses == 42
    assert snapshot.summary.category_rollup[0].category == "Food"
    assert store.is_authenticated() is False
    assert [path for _, path, _ in state.requests][0] == "/api/auth/login"
    assert state.requests[-1][1] == "/api/auth/logout"
