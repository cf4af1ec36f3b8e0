import os
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from errors import ValidationError
from models.common import add_error, format_timestamp, is_blank, new_id, parse_timestamp, utc_now


class OwnerKind(str, Enum):
    DRAFT = "Draft"
    POST = "Post"


@dataclass(frozen=True)
class Owner:
    """Reference to the composition that owns an attachment."""

    kind: OwnerKind
    id: str

    @classmethod
    def draft(cls, draft_id):
        return cls(OwnerKind.DRAFT, draft_id)

    @classmethod
    def post(cls, post_id):
        return cls(OwnerKind.POST, post_id)

    def to_dict(self):
        return {"type": self.kind.value, "id": self.id}

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        try:
            kind = OwnerKind(data["type"])
        except (KeyError, ValueError):
            raise ValidationError({"owner": [f"has an unknown type: {data.get('type')!r}"]}) from None
        if is_blank(data.get("id")):
            raise ValidationError({"owner": ["id can't be blank"]})
        return cls(kind, data["id"])


@dataclass
class MediaAttachment:
    name: str
    type: str
    size: int
    url: str
    preview_url: Optional[str] = None
    id: str = field(default_factory=new_id)
    owner: Optional[Owner] = None
    created_at: datetime = field(default_factory=utc_now)

    def validate(self):
        errors = {}
        if is_blank(self.name):
            add_error(errors, "name", "can't be blank")
        if is_blank(self.type):
            add_error(errors, "type", "can't be blank")
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            add_error(errors, "size", "must be an integer")
        elif self.size <= 0:
            add_error(errors, "size", "must be greater than 0")
        if is_blank(self.url):
            add_error(errors, "url", "can't be blank")
        if errors:
            raise ValidationError(errors)
        return self

    @property
    def is_image(self):
        return (self.type or "").startswith("image/")

    @property
    def is_video(self):
        return (self.type or "").startswith("video/")

    @property
    def is_audio(self):
        return (self.type or "").startswith("audio/")

    @property
    def is_orphaned(self):
        return self.owner is None

    @property
    def file_extension(self):
        return os.path.splitext(self.name)[1].lower()

    @property
    def humanized_size(self):
        if self.size < 1024:
            return f"{self.size} B"
        if self.size < 1024 * 1024:
            return f"{self.size / 1024:.1f} KB"
        return f"{self.size / (1024 * 1024):.1f} MB"

    def copy_for(self, owner):
        """New attachment with the same descriptive fields, owned by owner."""
        return replace(self, id=new_id(), owner=owner, created_at=utc_now())

    def to_descriptor(self):
        descriptor = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "url": self.url,
        }
        if self.preview_url:
            descriptor["previewUrl"] = self.preview_url
        return descriptor

    @classmethod
    def from_descriptor(cls, data, owner=None):
        if not isinstance(data, dict):
            raise ValidationError({"media": ["must be an object"]})
        kwargs = {
            "name": data.get("name", ""),
            "type": data.get("type", ""),
            "size": data.get("size"),
            "url": data.get("url", ""),
            "preview_url": data.get("previewUrl"),
            "owner": owner,
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs).validate()

    def to_dict(self):
        record = self.to_descriptor()
        record["owner"] = self.owner.to_dict() if self.owner else None
        record["createdAt"] = format_timestamp(self.created_at)
        return record

    @classmethod
    def from_dict(cls, data):
        attachment = cls.from_descriptor(data, owner=Owner.from_dict(data.get("owner")))
        attachment.created_at = parse_timestamp(data.get("createdAt")) or attachment.created_at
        return attachment
