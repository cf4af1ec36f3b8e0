"""Character counting and submit gating for a composition.

Everything here is a pure function of (content, selection set, registry) so
the composer form and post creation reach the same verdict.
"""

from dataclasses import dataclass
from enum import Enum

import grapheme

import config
from errors import NotFoundError, ValidationError


class Severity(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    OVER = "over"


@dataclass(frozen=True)
class CharacterStat:
    platform: str
    count: int
    limit: int

    @property
    def over_limit(self):
        return self.count > self.limit

    @property
    def fraction(self):
        return min(self.count / self.limit, 1.0)

    @property
    def percentage(self):
        return round(self.fraction * 100)

    @property
    def remaining(self):
        return self.limit - self.count

    @property
    def severity(self):
        return classify(self.count, self.limit)


def count_characters(content):
    """Count user-perceived characters (extended grapheme clusters)."""
    if not content:
        return 0
    return grapheme.length(content)


def classify(count, limit):
    if count > limit:
        return Severity.OVER
    if min(count / limit, 1.0) >= config.WARNING_THRESHOLD:
        return Severity.WARNING
    return Severity.NORMAL


def character_stat(content, platform_id, registry):
    return CharacterStat(platform_id, count_characters(content), registry.limit_for(platform_id))


def character_stats(content, selections, registry):
    """Stats for every selected platform, in selection order."""
    count = count_characters(content)
    return [
        CharacterStat(platform_id, count, registry.limit_for(platform_id))
        for platform_id in selections.selected_platforms()
    ]


def submit_errors(content, selections, registry):
    errors = {}
    selected = selections.selected_platforms()
    if not selected:
        errors.setdefault("selections", []).append("select at least one platform")
    if not content or not content.strip():
        errors.setdefault("content", []).append("can't be blank")
    count = count_characters(content)
    for platform_id in selected:
        try:
            limit = registry.limit_for(platform_id)
        except NotFoundError:
            errors.setdefault("selections", []).append(f"unknown platform {platform_id}")
            continue
        if count > limit:
            errors.setdefault("content", []).append(
                f"is too long for {platform_id} ({count}/{limit} characters)"
            )
    return errors


def can_submit(content, selections, registry):
    return not submit_errors(content, selections, registry)


def ensure_submittable(content, selections, registry):
    errors = submit_errors(content, selections, registry)
    if errors:
        raise ValidationError(errors)
