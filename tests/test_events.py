"""Tests for the in-process EventDispatcher."""

from unittest.mock import Mock

from conftest import make_directory, make_handler
from google_role_sync.accounts import Account
from google_role_sync.events import USER_CREATED, USER_LOGIN, EventDispatcher, UserEvent
from google_role_sync.role_sync import SyncStatus


def test_dispatch_without_listeners():
    assert EventDispatcher().dispatch(USER_LOGIN, object()) == []


def test_listeners_called_in_order():
    dispatcher = EventDispatcher()
    first = Mock(return_value=1)
    second = Mock(return_value=2)
    dispatcher.subscribe(USER_LOGIN, first)
    dispatcher.subscribe(USER_LOGIN, second)
    event = object()

    assert dispatcher.dispatch(USER_LOGIN, event) == [1, 2]
    first.assert_called_once_with(event)
    second.assert_called_once_with(event)


def test_user_event_exposes_account():
    account = Account(email="jane@your_domain.com")
    assert UserEvent(account).get_user() is account


def test_add_subscriber_routes_both_events():
    handler, _, _ = make_handler(directory=make_directory(["Editor Group Name"]))
    dispatcher = EventDispatcher()
    dispatcher.add_subscriber(handler)
    account = Account(email="jane@your_domain.com", roles=["author"])

    created = dispatcher.dispatch(USER_CREATED, UserEvent(account))
    login = dispatcher.dispatch(USER_LOGIN, UserEvent(account))

    assert [r.status for r in created] == [SyncStatus.SUCCESS]
    assert [r.status for r in login] == [SyncStatus.SUCCESS]
    assert account.active is True
    assert account.roles == ["editor"]


def test_failing_sync_does_not_reach_dispatcher():
    handler, _, _ = make_handler(directory=make_directory(error=RuntimeError("boom")))
    dispatcher = EventDispatcher()
    dispatcher.add_subscriber(handler)
    after = Mock(return_value="ran")
    dispatcher.subscribe(USER_LOGIN, after)
    account = Account(email="jane@your_domain.com", roles=["author"])

    results = dispatcher.dispatch(USER_LOGIN, UserEvent(account))

    assert results[0].status is SyncStatus.FAILED_RESTORED
    assert results[1] == "ran"
    assert account.roles == ["author"]
