import pytest

from app.domain.businesses.context import BUSINESS_CONTEXT_KEY
from app.domain.businesses.session import MAX_SWITCH_HISTORY, BusinessSessionManager

from .conftest import OWNER_ID


@pytest.fixture
def session(context):
    return BusinessSessionManager(context, OWNER_ID)


def test_initialize_selects_first_business(session, make_business):
    business = make_business()
    stats = session.initialize_session()
    assert stats["current_business_id"] == business.id
    assert stats["available_businesses"] == 1
    assert stats["session_start_time"] is not None


def test_switch_records_history(session, make_business):
    first = make_business()
    second = make_business()
    session.context.set_business_context(first.id)

    result = session.switch_to_business(second.id, reason="dashboard")

    assert result.success
    history = session.get_switch_history()
    assert len(history) == 1
    assert history[0]["from_business_id"] == first.id
    assert history[0]["to_business_id"] == second.id
    assert history[0]["reason"] == "dashboard"
    assert session.get_current_business().id == second.id


def test_history_is_capped(session, make_business):
    a = make_business()
    b = make_business()
    for i in range(MAX_SWITCH_HISTORY + 3):
        session.switch_to_business(a.id if i % 2 == 0 else b.id)
    assert len(session.get_switch_history()) == MAX_SWITCH_HISTORY


def test_switch_to_foreign_business_not_recorded(session, make_business):
    foreign = make_business(owner_id="someone-else")
    listener_calls = []
    session.add_switch_listener(listener_calls.append)

    result = session.switch_to_business(foreign.id)

    assert result.error.code == "ACCESS_DENIED"
    assert session.get_switch_history() == []
    assert listener_calls == []
    assert session.can_switch_to_business(foreign.id) is False


def test_switch_listener(session, make_business):
    business = make_business()
    events = []
    unsubscribe = session.add_switch_listener(events.append)
    session.switch_to_business(business.id)
    unsubscribe()
    assert [e["to_business_id"] for e in events] == [business.id]


def test_validate_session_without_context(session):
    assert session.validate_session() == {"valid": False, "business_id": None, "reason": "no_context"}


def test_validate_session_revoked_ownership_clears(session, storage, make_business):
    foreign = make_business(owner_id="someone-else")
    storage.set(BUSINESS_CONTEXT_KEY, foreign.id)

    assert session.validate_session()["reason"] == "ownership_revoked"
    assert storage.get(BUSINESS_CONTEXT_KEY) is None


def test_corrupt_history_is_ignored(session, storage):
    storage.set("business_switches", "{not json")
    assert session.get_switch_history() == []


def test_clear_session(session, storage, make_business):
    business = make_business()
    session.initialize_session()
    session.switch_to_business(business.id)

    assert session.clear_session().success
    assert storage.get(BUSINESS_CONTEXT_KEY) is None
    assert session.get_switch_history() == []
    assert session.get_session_stats()["session_start_time"] is None
