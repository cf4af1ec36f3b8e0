import pytest

from errors import NotFoundError, StorageError, ValidationError
from models import Account
from services.accounts import (
    accounts_for_user,
    deactivate_account,
    delete_account,
    get_account,
    link_account,
    platform_accounts,
)


def test_link_assigns_id(store, bluesky_account, mastodon_account):
    assert bluesky_account.id == 1
    assert mastodon_account.id == 2
    assert get_account(store, 1) is bluesky_account


def test_link_rejects_unknown_platform(store):
    with pytest.raises(ValidationError):
        link_account(store, Account(user_id=1, platform_id="myspace", username="tom", access_token="t"))
    assert store.all("accounts") == []


def test_accounts_for_user(store, bluesky_account, mastodon_account):
    link_account(store, Account(user_id=2, platform_id="bluesky", username="sam", access_token="t"))
    assert accounts_for_user(store, 1) == [bluesky_account, mastodon_account]
    assert platform_accounts(store, 1, "mastodon") == [mastodon_account]


def test_deactivated_accounts_are_not_used(store, bluesky_account):
    deactivate_account(store, bluesky_account.id)
    assert platform_accounts(store, 1, "bluesky") == []
    assert accounts_for_user(store, 1) == [bluesky_account]


def test_delete_account(store, bluesky_account):
    delete_account(store, bluesky_account.id)
    with pytest.raises(NotFoundError):
        get_account(store, bluesky_account.id)
    with pytest.raises(NotFoundError):
        delete_account(store, bluesky_account.id)


def test_failed_deactivation_leaves_account_active(store, bluesky_account, monkeypatch):
    def broken_write():
        raise StorageError("disk full")

    monkeypatch.setattr(store, "_write", broken_write)

    with pytest.raises(StorageError):
        deactivate_account(store, bluesky_account.id)

    assert store.get("accounts", bluesky_account.id).is_active is True
    assert len(platform_accounts(store, 1, "bluesky")) == 1
