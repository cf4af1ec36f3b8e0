import json
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from errors import ValidationError

DEFAULT_SELECTED = ("bluesky", "mastodon", "threads")


@dataclass(frozen=True)
class PlatformSelection:
    id: str
    is_selected: bool = False
    accounts: Optional[Tuple[int, ...]] = None

    def to_dict(self):
        entry = {"id": self.id, "isSelected": self.is_selected}
        if self.accounts is not None:
            entry["accounts"] = list(self.accounts)
        return entry

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError({"selections": ["entries must be objects"]})
        platform_id = data.get("id")
        if not isinstance(platform_id, str) or not platform_id:
            raise ValidationError({"selections": ["entry id must be a non-empty string"]})
        is_selected = data.get("isSelected", False)
        if not isinstance(is_selected, bool):
            raise ValidationError({"selections": [f"isSelected for {platform_id} must be a boolean"]})
        accounts = data.get("accounts")
        if accounts is not None:
            if not isinstance(accounts, list) or any(
                isinstance(a, bool) or not isinstance(a, int) for a in accounts
            ):
                raise ValidationError({"selections": [f"accounts for {platform_id} must be a list of integers"]})
            accounts = tuple(accounts)
        return cls(platform_id, is_selected, accounts)


class SelectionSet:
    """Ordered per-platform inclusion flags of one composition.

    Instances are immutable; the ``with_*``/``toggled*`` methods return a new set.
    """

    def __init__(self, selections=()):
        self._entries = tuple(selections)
        seen = set()
        duplicates = []
        for entry in self._entries:
            if entry.id in seen:
                duplicates.append(entry.id)
            seen.add(entry.id)
        if duplicates:
            raise ValidationError({"selections": [f"duplicate platform {pid}" for pid in duplicates]})

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __eq__(self, other):
        if not isinstance(other, SelectionSet):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self):
        return hash(self._entries)

    def __repr__(self):
        return f"SelectionSet({list(self._entries)!r})"

    def get(self, platform_id):
        for entry in self._entries:
            if entry.id == platform_id:
                return entry
        return None

    def is_selected(self, platform_id):
        entry = self.get(platform_id)
        return bool(entry and entry.is_selected)

    def selected_platforms(self):
        return [entry.id for entry in self._entries if entry.is_selected]

    def _updated(self, platform_id, **changes):
        if self.get(platform_id) is None:
            return SelectionSet(self._entries + (replace(PlatformSelection(platform_id), **changes),))
        return SelectionSet(
            replace(entry, **changes) if entry.id == platform_id else entry
            for entry in self._entries
        )

    def with_selected(self, platform_id, is_selected=True):
        return self._updated(platform_id, is_selected=is_selected)

    def toggled(self, platform_id):
        return self.with_selected(platform_id, not self.is_selected(platform_id))

    def with_accounts(self, platform_id, accounts):
        return self._updated(platform_id, accounts=None if accounts is None else tuple(accounts))

    def toggled_account(self, platform_id, account_id):
        entry = self.get(platform_id)
        current = list(entry.accounts or ()) if entry else []
        if account_id in current:
            current.remove(account_id)
        else:
            current.append(account_id)
        return self.with_accounts(platform_id, current)

    def validate(self, registry):
        unknown = [pid for pid in self.selected_platforms() if pid not in registry]
        if unknown:
            raise ValidationError({"selections": [f"unknown platform {pid}" for pid in unknown]})
        return self

    def to_list(self):
        return [entry.to_dict() for entry in self._entries]

    @classmethod
    def from_list(cls, data):
        if data is None:
            return cls()
        if not isinstance(data, list):
            raise ValidationError({"selections": ["must be a list"]})
        return cls(PlatformSelection.from_dict(item) for item in data)

    def to_json(self):
        return json.dumps(self.to_list())

    @classmethod
    def from_json(cls, text):
        if not text:
            return cls()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError({"selections": [f"is not valid JSON ({e.msg})"]}) from e
        return cls.from_list(data)


def default_selections(registry):
    return SelectionSet(
        PlatformSelection(pid, pid in DEFAULT_SELECTED) for pid in registry.ids()
    )
