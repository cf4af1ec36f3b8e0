from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from errors import ValidationError
from models.common import add_error, format_timestamp, is_blank, new_id, utc_now
from models.media import MediaAttachment
from models.selection import SelectionSet


@dataclass
class Composition:
    """Content, media and platform selections shared by drafts and posts."""

    user_id: int
    content: str
    selections: SelectionSet = field(default_factory=SelectionSet)
    media: List[MediaAttachment] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def collect_errors(self, registry):
        errors = {}
        if self.user_id is None:
            add_error(errors, "user_id", "can't be blank")
        if is_blank(self.content):
            add_error(errors, "content", "can't be blank")
        try:
            self.selections.validate(registry)
        except ValidationError as e:
            for name, messages in e.errors.items():
                errors.setdefault(name, []).extend(messages)
        for attachment in self.media:
            try:
                attachment.validate()
            except ValidationError as e:
                add_error(errors, "media", f"{attachment.name or attachment.id}: {e}")
        return errors

    def validate(self, registry):
        errors = self.collect_errors(registry)
        if errors:
            raise ValidationError(errors)
        return self

    def selected_platforms(self):
        return self.selections.selected_platforms()

    def touch(self):
        self.updated_at = utc_now()

    def base_dict(self, include_media=False):
        data = {
            "id": self.id,
            "userId": self.user_id,
            "content": self.content,
            "platforms": self.selections.to_list(),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        if include_media:
            data["mediaFiles"] = [m.to_descriptor() for m in self.media]
        return data
