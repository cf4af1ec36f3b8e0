import logging

logger = logging.getLogger(__name__)


def link_account(store, account):
    """Validate and persist a newly linked platform account."""
    account.validate(store.registry())
    store.put("accounts", account)
    logger.info("Linked %s account %s for user %s", account.platform_id, account.username, account.user_id)
    return account


def get_account(store, account_id):
    return store.get("accounts", account_id)


def accounts_for_user(store, user_id):
    return [a for a in store.all("accounts") if a.user_id == user_id]


def platform_accounts(store, user_id, platform_id):
    """Active accounts a user has on one platform."""
    return [
        a for a in store.all("accounts")
        if a.user_id == user_id and a.platform_id == platform_id and a.is_active
    ]


def deactivate_account(store, account_id):
    account = store.get("accounts", account_id)
    with store.transaction():
        account.is_active = False
        store.put("accounts", account)
    logger.info("Deactivated account %s", account_id)
    return account


def delete_account(store, account_id):
    """Remove the account row. Posts, drafts and media are left alone."""
    store.get("accounts", account_id)
    store.delete("accounts", account_id)
    logger.info("Deleted account %s", account_id)
