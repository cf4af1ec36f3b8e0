from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from errors import ValidationError
from models.common import add_error, format_timestamp, is_blank, parse_timestamp, utc_now


@dataclass
class Account:
    """A user's linked identity on one external platform."""

    user_id: int
    platform_id: str
    username: str
    access_token: str = field(default="", repr=False)
    display_name: str = ""
    avatar_url: str = ""
    instance_url: Optional[str] = None
    refresh_token: Optional[str] = field(default=None, repr=False)
    expires_at: Optional[datetime] = None
    is_active: bool = True
    id: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)

    def validate(self, registry):
        errors = {}
        if is_blank(self.platform_id):
            add_error(errors, "platform_id", "can't be blank")
        elif self.platform_id not in registry:
            add_error(errors, "platform_id", f"is not a known platform ({self.platform_id})")
        if is_blank(self.username):
            add_error(errors, "username", "can't be blank")
        if is_blank(self.access_token):
            add_error(errors, "access_token", "can't be blank")
        if errors:
            raise ValidationError(errors)
        return self

    def is_expired(self, now=None):
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utc_now())

    @property
    def handle(self):
        if self.instance_url:
            host = self.instance_url.split("://", 1)[-1].rstrip("/")
            return f"@{self.username}@{host}"
        return f"@{self.username}"

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "platformId": self.platform_id,
            "username": self.username,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "instanceUrl": self.instance_url,
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": format_timestamp(self.expires_at),
            "isActive": self.is_active,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data.get("id"),
            user_id=data["userId"],
            platform_id=data.get("platformId", ""),
            username=data.get("username", ""),
            display_name=data.get("displayName", ""),
            avatar_url=data.get("avatarUrl", ""),
            instance_url=data.get("instanceUrl"),
            access_token=data.get("accessToken", ""),
            refresh_token=data.get("refreshToken"),
            expires_at=parse_timestamp(data.get("expiresAt")),
            is_active=data.get("isActive", True),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
        )
