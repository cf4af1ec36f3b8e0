from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from errors import ValidationError
from models.common import add_error, format_timestamp, parse_timestamp, utc_now
from models.composition import Composition
from models.media import Owner
from models.selection import SelectionSet


class PostStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


# failed -> pending is a resubmission for retry
ALLOWED_TRANSITIONS = {
    PostStatus.PENDING: {PostStatus.PUBLISHED, PostStatus.FAILED},
    PostStatus.FAILED: {PostStatus.PENDING},
    PostStatus.PUBLISHED: set(),
}


@dataclass
class Publication:
    """Outcome of publishing a post through one account."""

    platform_id: str
    account_id: Optional[int]
    status: PostStatus
    external_id: str = ""
    post_url: str = ""
    error: str = ""
    attempted_at: datetime = field(default_factory=utc_now)

    def to_dict(self):
        return {
            "platformId": self.platform_id,
            "accountId": self.account_id,
            "status": self.status.value,
            "externalId": self.external_id,
            "url": self.post_url,
            "error": self.error,
            "attemptedAt": format_timestamp(self.attempted_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            platform_id=data["platformId"],
            account_id=data.get("accountId"),
            status=PostStatus(data["status"]),
            external_id=data.get("externalId", ""),
            post_url=data.get("url", ""),
            error=data.get("error", ""),
            attempted_at=parse_timestamp(data.get("attemptedAt")) or utc_now(),
        )


@dataclass
class Post(Composition):
    thread_parent_id: Optional[str] = None
    thread_index: int = 0
    status: PostStatus = PostStatus.PENDING
    publications: List[Publication] = field(default_factory=list)

    @property
    def media_owner(self):
        return Owner.post(self.id)

    @property
    def is_root(self):
        return self.thread_parent_id is None

    def collect_errors(self, registry):
        errors = super().collect_errors(registry)
        if isinstance(self.thread_index, bool) or not isinstance(self.thread_index, int):
            add_error(errors, "thread_index", "must be an integer")
        elif self.thread_index < 0:
            add_error(errors, "thread_index", "must be greater than or equal to 0")
        elif self.thread_parent_id is not None and self.thread_index < 1:
            add_error(errors, "thread_index", "must be at least 1 for a thread child")
        if self.thread_parent_id is not None and self.thread_parent_id == self.id:
            add_error(errors, "thread_parent_id", "can't reference the post itself")
        if not isinstance(self.status, PostStatus):
            add_error(errors, "status", f"is not a valid status ({self.status!r})")
        return errors

    def transition_to(self, status):
        status = PostStatus(status)
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise ValidationError(
                {"status": [f"can't change from {self.status.value} to {status.value}"]}
            )
        self.status = status
        self.touch()
        return self

    def publication_for(self, platform_id, account_id):
        for publication in self.publications:
            if publication.platform_id == platform_id and publication.account_id == account_id:
                return publication
        return None

    def record_publication(self, publication):
        self.publications = [
            p for p in self.publications
            if not (p.platform_id == publication.platform_id and p.account_id == publication.account_id)
        ]
        self.publications.append(publication)
        self.touch()

    def to_dict(self, include_media=False):
        data = self.base_dict(include_media=include_media)
        data.update({
            "threadParentId": self.thread_parent_id,
            "threadIndex": self.thread_index,
            "status": self.status.value,
            "publications": [p.to_dict() for p in self.publications],
        })
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            user_id=data.get("userId"),
            content=data.get("content", ""),
            selections=SelectionSet.from_list(data.get("platforms")),
            thread_parent_id=data.get("threadParentId"),
            thread_index=data.get("threadIndex", 0),
            status=PostStatus(data.get("status", PostStatus.PENDING.value)),
            publications=[Publication.from_dict(p) for p in data.get("publications", [])],
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
            updated_at=parse_timestamp(data.get("updatedAt")) or utc_now(),
        )
