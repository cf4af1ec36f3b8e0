from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class PublishResult:
    platform: str
    success: bool
    external_id: str = ""
    post_url: str = ""
    error: str = ""

    @classmethod
    def failure(cls, platform, reason):
        return cls(platform=platform, success=False, error=str(reason))


class Publisher(ABC):
    """Publishing collaborator for one platform.

    Implementations wrap a platform API. They report problems through a failed
    ``PublishResult`` instead of raising; the publishing service still guards
    against exceptions that slip through.
    """

    name: str = ""

    @abstractmethod
    def publish(self, content, account, media=None, reply_to=None):
        """Publish content as account. Returns a PublishResult."""
        pass

    def validate_credentials(self, account):
        """Check the account can be used to publish. Returns bool."""
        return bool(account.is_active and account.access_token and not account.is_expired())
