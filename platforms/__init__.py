from dataclasses import dataclass

from errors import NotFoundError, ValidationError

PLATFORM_CHARACTER_LIMITS = {
    "bluesky": 300,
    "mastodon": 500,
    "threads": 500,
    "nostr": 5000,
}

PLATFORM_NAMES = {
    "bluesky": "Bluesky",
    "mastodon": "Mastodon",
    "threads": "Threads",
    "nostr": "Nostr",
}


@dataclass(frozen=True)
class PlatformLimit:
    platform_id: str
    character_limit: int
    name: str = ""

    def validate(self):
        errors = {}
        if not self.platform_id:
            errors.setdefault("platform_id", []).append("can't be blank")
        if (
            isinstance(self.character_limit, bool)
            or not isinstance(self.character_limit, int)
            or self.character_limit <= 0
        ):
            errors.setdefault("character_limit", []).append("must be greater than 0")
        if errors:
            raise ValidationError(errors)
        return self

    def to_dict(self):
        return {"id": self.platform_id, "characterLimit": self.character_limit, "name": self.name}

    @classmethod
    def from_dict(cls, data):
        return cls(
            platform_id=data.get("id", ""),
            character_limit=data.get("characterLimit"),
            name=data.get("name", ""),
        ).validate()


class PlatformRegistry:
    """Read-only mapping of platform id to character limit.

    Normal operation never mutates a registry. ``reseed`` is the one
    administrative path: it adds unknown platforms and leaves every existing
    limit alone, so running it twice is harmless.
    """

    def __init__(self, limits=None):
        self._limits = {}
        if limits is None:
            limits = default_limits()
        self.reseed(limits)

    def reseed(self, limits):
        """Add platforms not yet known. Returns the ids that were added."""
        if isinstance(limits, dict):
            limits = [
                PlatformLimit(pid, limit, PLATFORM_NAMES.get(pid, pid))
                for pid, limit in limits.items()
            ]
        added = []
        for entry in limits:
            entry.validate()
            if entry.platform_id in self._limits:
                continue
            self._limits[entry.platform_id] = entry
            added.append(entry.platform_id)
        return added

    def limit_for(self, platform_id):
        try:
            return self._limits[platform_id].character_limit
        except KeyError:
            raise NotFoundError(f"Unknown platform: {platform_id}") from None

    def name_for(self, platform_id):
        try:
            return self._limits[platform_id].name or platform_id
        except KeyError:
            raise NotFoundError(f"Unknown platform: {platform_id}") from None

    def ids(self):
        return list(self._limits)

    def limits(self):
        return list(self._limits.values())

    def __contains__(self, platform_id):
        return platform_id in self._limits

    def __len__(self):
        return len(self._limits)

    def __repr__(self):
        pairs = ", ".join(f"{p.platform_id}={p.character_limit}" for p in self._limits.values())
        return f"PlatformRegistry({pairs})"


def default_limits():
    return [
        PlatformLimit(pid, limit, PLATFORM_NAMES.get(pid, pid))
        for pid, limit in PLATFORM_CHARACTER_LIMITS.items()
    ]


_registry = None


def get_registry():
    global _registry
    if _registry is None:
        _registry = PlatformRegistry()
    return _registry


def limit_for(platform_id):
    return get_registry().limit_for(platform_id)
