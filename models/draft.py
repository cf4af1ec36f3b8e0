from dataclasses import dataclass

from models.common import parse_timestamp, utc_now
from models.composition import Composition
from models.media import Owner
from models.post import Post
from models.selection import SelectionSet


@dataclass
class Draft(Composition):
    is_thread: bool = False

    @property
    def media_owner(self):
        return Owner.draft(self.id)

    def to_post(self):
        """Build an unsaved Post carrying this draft's content, selections and media copies.

        The draft and its own attachments are left as they are.
        """
        post = Post(user_id=self.user_id, content=self.content, selections=self.selections)
        owner = post.media_owner
        post.media = [attachment.copy_for(owner) for attachment in self.media]
        return post

    def to_dict(self, include_media=False):
        data = self.base_dict(include_media=include_media)
        data["isThread"] = self.is_thread
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            user_id=data.get("userId"),
            content=data.get("content", ""),
            selections=SelectionSet.from_list(data.get("platforms")),
            is_thread=data.get("isThread", False),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
            updated_at=parse_timestamp(data.get("updatedAt")) or utc_now(),
        )
