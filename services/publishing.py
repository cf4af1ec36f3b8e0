"""Publishing flow that drives Post.status.

Publishers are collaborators (see ``platforms.base.Publisher``). Every
outcome, including a missing publisher or account, is stored as a
Publication on the post; a post ends ``published`` only when all of its
publications succeeded, otherwise ``failed``. A failed post can be
resubmitted with ``retry_post``, which only repeats the failed pairs.
"""

import logging

from errors import ValidationError
from models.post import PostStatus, Publication
from platforms.base import PublishResult
from services.accounts import platform_accounts
from services.media import compatible_media
from services.threads import is_thread, thread_posts, thread_root
from services.validation import ensure_submittable

logger = logging.getLogger(__name__)


class PublishingService:
    def __init__(self, store, publishers):
        self.store = store
        if isinstance(publishers, dict):
            self.publishers = dict(publishers)
        else:
            self.publishers = {p.name: p for p in publishers}

    # --- public API ---

    def publish_post(self, post_id):
        """Publish a pending post (or a whole thread, from its root). Returns PublishResults."""
        post = self.store.get("posts", post_id)
        if post.thread_parent_id is not None:
            raise ValidationError({"base": ["thread replies are published together with their root post"]})
        if post.status != PostStatus.PENDING:
            raise ValidationError({"status": [f"is {post.status.value}; only pending posts can be published"]})

        thread = self._thread_for(post)
        registry = self.store.registry()
        for member in thread:
            ensure_submittable(member.content, member.selections, registry)

        results = []
        with self.store.transaction():
            for platform_id, account_id, account in self._targets(post):
                results.extend(self._publish_chain(thread, platform_id, account_id, account))
            self._settle(thread)
        return results

    def retry_post(self, post_id):
        """Resubmit the failed platform/account pairs of a failed post.

        A thread reply is retried through its root so replies keep chaining
        to the posts already published.
        """
        post = self.store.get("posts", post_id)
        if post.thread_parent_id is not None:
            post = thread_root(post, self.store.posts)
        if post.status != PostStatus.FAILED:
            raise ValidationError({"status": [f"is {post.status.value}; only failed posts can be retried"]})

        thread = self._thread_for(post)
        failed_pairs = []
        for member in thread:
            for publication in member.publications:
                pair = (publication.platform_id, publication.account_id)
                if publication.status == PostStatus.FAILED and pair not in failed_pairs:
                    failed_pairs.append(pair)

        results = []
        with self.store.transaction():
            for member in thread:
                if member.status == PostStatus.FAILED:
                    member.transition_to(PostStatus.PENDING)
            for platform_id, account_id in failed_pairs:
                if account_id is None:
                    # No account existed last time; look again
                    for member in thread:
                        member.publications = [
                            p for p in member.publications
                            if not (p.platform_id == platform_id and p.account_id is None)
                        ]
                    targets = self._platform_targets(post, platform_id)
                else:
                    targets = [(platform_id, account_id, self.store.find("accounts", account_id))]
                for target in targets:
                    results.extend(self._publish_chain(thread, *target))
            self._settle(thread)
        logger.info("Retried post %s: %d attempts", post_id, len(results))
        return results

    # --- internals ---

    def _thread_for(self, post):
        posts = self.store.posts
        if is_thread(post, posts):
            return thread_posts(post, posts)
        return [post]

    def _targets(self, post):
        targets = []
        for platform_id in post.selections.selected_platforms():
            targets.extend(self._platform_targets(post, platform_id))
        return targets

    def _platform_targets(self, post, platform_id):
        selection = post.selections.get(platform_id)
        if selection is not None and selection.accounts:
            return [(platform_id, aid, self.store.find("accounts", aid)) for aid in selection.accounts]
        accounts = platform_accounts(self.store, post.user_id, platform_id)
        if not accounts:
            return [(platform_id, None, None)]
        return [(platform_id, a.id, a) for a in accounts]

    def _publish_chain(self, thread, platform_id, account_id, account):
        """Publish each post of the thread in order, replying to the previous one."""
        results = []
        reply_to = None
        broken = False
        for post in thread:
            existing = post.publication_for(platform_id, account_id)
            if existing is not None and existing.status == PostStatus.PUBLISHED:
                reply_to = existing.external_id
                continue
            if broken:
                result = PublishResult.failure(platform_id, "previous post in thread failed")
            else:
                result = self._publish_one(post, platform_id, account_id, account, reply_to)
            post.record_publication(Publication(
                platform_id=platform_id,
                account_id=account_id,
                status=PostStatus.PUBLISHED if result.success else PostStatus.FAILED,
                external_id=result.external_id,
                post_url=result.post_url,
                error=result.error,
            ))
            results.append(result)
            if result.success:
                reply_to = result.external_id
            else:
                broken = True
        return results

    def _publish_one(self, post, platform_id, account_id, account, reply_to):
        publisher = self.publishers.get(platform_id)
        if publisher is None:
            result = PublishResult.failure(platform_id, f"No publisher for {platform_id}")
        elif account is None:
            if account_id is None:
                reason = f"No active {platform_id} account"
            else:
                reason = f"Account {account_id} not found"
            result = PublishResult.failure(platform_id, reason)
        elif account.platform_id != platform_id:
            result = PublishResult.failure(platform_id, f"Account {account_id} belongs to {account.platform_id}")
        elif not publisher.validate_credentials(account):
            result = PublishResult.failure(platform_id, f"{platform_id} credentials not usable for {account.username}")
        else:
            try:
                result = publisher.publish(
                    post.content,
                    account,
                    media=compatible_media(post.media, platform_id) or None,
                    reply_to=reply_to,
                )
            except Exception as e:
                result = PublishResult.failure(platform_id, e)

        if result.success:
            logger.info("Published post %s to %s as account %s", post.id, platform_id, account_id)
        else:
            logger.error("Failed to publish post %s to %s: %s", post.id, platform_id, result.error)
        return result

    def _settle(self, thread):
        """Move pending posts to published/failed. A thread root stands for the whole thread."""
        def clean(post):
            return bool(post.publications) and all(
                p.status == PostStatus.PUBLISHED for p in post.publications
            )

        thread_ok = all(clean(post) for post in thread)
        for index, post in enumerate(thread):
            if post.status != PostStatus.PENDING:
                continue
            succeeded = thread_ok if index == 0 else clean(post)
            post.transition_to(PostStatus.PUBLISHED if succeeded else PostStatus.FAILED)
            self.store.put("posts", post)
