from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from credentials import CredentialStore
from fake_backend import make_store
from models import CredentialKind


def test_pair_is_written_and_cleared_together() -> None:
    store = make_store()
    assert store.get(CredentialKind.access) is None
    assert not store.is_authenticated()

    store.store_pair("access-1", "refresh-1")
    assert store.get(CredentialKind.access) == "access-1"
    assert store.get(CredentialKind.refresh) == "refresh-1"
    assert store.is_authenticated()

    store.store_pair("access-2", "refresh-2")
    assert store.get(CredentialKind.access) == "access-2"
    assert store.get(CredentialKind.refresh) == "refresh-2"

    store.clear_pair()
    assert store.get(CredentialKind.access) is None
    assert store.get(CredentialKind.refresh) is None


def test_single_kind_set_and_clear() -> None:
    store = make_store()
    store.set(CredentialKind.refresh, "refresh-1")
    assert store.get(CredentialKind.refresh) == "refresh-1"
    assert store.get(CredentialKind.access) is None

    store.clear(CredentialKind.refresh)
    assert store.get(CredentialKind.refresh) is None


def test_clear_session_drops_cached_profile() -> None:
    store = make_store()
    store.store_pair("access-1", "refresh-1")
    store.set_profile({"uid": "u-1", "name": "Ada"})
    assert store.get_profile() == {"uid": "u-1", "name": "Ada"}

    store.clear_session()

    assert store.get(CredentialKind.access) is None
    assert store.get(CredentialKind.refresh) is None
    assert store.get_profile() is None


def test_unavailable_storage_reads_as_unauthenticated() -> None:
    # no tables created: every read fails at the database level
    engine = create_engine("sqlite+pysqlite:///:memory:")
    store = CredentialStore(sessionmaker(bind=engine))

    assert store.get(CredentialKind.access) is None
    assert store.get_profile() is None
    assert not store.is_authenticated()
