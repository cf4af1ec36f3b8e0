import logging

from errors import ConversionFailure
from models.media import Owner
from services.media import delete_media_for, sync_media
from services.posts import save_post, validate_post

logger = logging.getLogger(__name__)


def save_draft(store, draft):
    """Create or update a draft. Drafts may exceed platform limits; posts may not."""
    draft.validate(store.registry())
    with store.transaction():
        draft.touch()
        store.put("drafts", draft)
        sync_media(store, draft.media_owner, draft.media)
    logger.info("Saved draft %s for user %s", draft.id, draft.user_id)
    return draft


def get_draft(store, draft_id):
    return store.get("drafts", draft_id)


def drafts_for_user(store, user_id):
    drafts = [d for d in store.all("drafts") if d.user_id == user_id]
    return sorted(drafts, key=lambda d: d.updated_at, reverse=True)


def delete_draft(store, draft_id):
    draft = store.get("drafts", draft_id)
    with store.transaction():
        delete_media_for(store, Owner.draft(draft.id))
        store.delete("drafts", draft.id)
    logger.info("Deleted draft %s", draft_id)


def convert_draft(store, draft_id, delete_draft=False):
    """Turn a stored draft into a stored post with copies of its media.

    Validation problems raise ValidationError before anything is written.
    Anything that fails while writing rolls the whole conversion back and
    raises ConversionFailure; the draft is untouched either way unless
    ``delete_draft`` is set and the conversion succeeded.
    """
    draft = store.get("drafts", draft_id)
    post = draft.to_post()
    validate_post(store, post)
    try:
        with store.transaction():
            save_post(store, post)
            if delete_draft:
                delete_media_for(store, Owner.draft(draft.id))
                store.delete("drafts", draft.id)
    except Exception as e:
        logger.error("Conversion of draft %s rolled back: %s", draft_id, e)
        raise ConversionFailure(f"Draft {draft_id} could not be converted: {e}") from e
    logger.info("Converted draft %s into post %s", draft_id, post.id)
    return post
