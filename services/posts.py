import logging

from errors import ValidationError
from models.media import Owner
from models.post import PostStatus
from services.media import delete_media_for, sync_media
from services.threads import check_thread_placement, setup_thread
from services.validation import ensure_submittable

logger = logging.getLogger(__name__)


def validate_post(store, post):
    """Entity rules, submit gate and thread placement for a post about to be saved."""
    registry = store.registry()
    post.validate(registry)
    ensure_submittable(post.content, post.selections, registry)
    check_thread_placement(post, store.posts)


def save_post(store, post):
    with store.transaction():
        store.put("posts", post)
        sync_media(store, Owner.post(post.id), post.media)
    return post


def create_post(store, post):
    if store.find("posts", post.id) is not None:
        raise ValidationError({"id": [f"{post.id} is already taken"]})
    validate_post(store, post)
    save_post(store, post)
    logger.info("Created post %s for user %s", post.id, post.user_id)
    return post


def create_thread(store, user_id, contents, selections):
    """Persist a whole thread in one transaction."""
    posts = setup_thread(contents, user_id, selections)
    with store.transaction():
        for post in posts:
            create_post(store, post)
    logger.info("Created thread %s with %d posts", posts[0].id, len(posts))
    return posts


def get_post(store, post_id):
    return store.get("posts", post_id)


def posts_for_user(store, user_id, status=None):
    posts = [p for p in store.all("posts") if p.user_id == user_id]
    if status is not None:
        status = PostStatus(status)
        posts = [p for p in posts if p.status == status]
    return sorted(posts, key=lambda p: p.created_at, reverse=True)


def root_posts(store, user_id):
    return [p for p in posts_for_user(store, user_id) if p.thread_parent_id is None]


def delete_post(store, post_id):
    """Delete a post and its media; children keep existing without a parent."""
    post = store.get("posts", post_id)
    with store.transaction():
        for child in list(store.posts.values()):
            if child.thread_parent_id == post.id:
                child.thread_parent_id = None
                child.touch()
                store.put("posts", child)
        delete_media_for(store, Owner.post(post.id))
        store.delete("posts", post.id)
    logger.info("Deleted post %s", post_id)
