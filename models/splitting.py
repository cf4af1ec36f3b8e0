from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from errors import ValidationError
from models.common import add_error, format_timestamp, is_blank, new_id, parse_timestamp, utc_now


class SplittingStrategy(str, Enum):
    SEMANTIC = "semantic"
    SENTENCE = "sentence"
    RETAIN_HASHTAGS = "retain_hashtags"
    PRESERVE_MENTIONS = "preserve_mentions"

    @property
    def label(self):
        return STRATEGY_LABELS[self]

    @property
    def description(self):
        return STRATEGY_DESCRIPTIONS[self]


STRATEGY_LABELS = {
    SplittingStrategy.SEMANTIC: "Semantic splitting",
    SplittingStrategy.SENTENCE: "Sentence-based splitting",
    SplittingStrategy.RETAIN_HASHTAGS: "Hashtag retention",
    SplittingStrategy.PRESERVE_MENTIONS: "Mention preservation",
}

STRATEGY_DESCRIPTIONS = {
    SplittingStrategy.SEMANTIC: "Group related ideas together so each post reads as a complete thought.",
    SplittingStrategy.SENTENCE: "Break only at sentence boundaries, never inside a sentence.",
    SplittingStrategy.RETAIN_HASHTAGS: "Keep every hashtag from the original text in the posts.",
    SplittingStrategy.PRESERVE_MENTIONS: "Keep @mentions intact and in the post where they first appear.",
}


def parse_strategies(values):
    """Turn raw tags into SplittingStrategy members, rejecting unknown ones."""
    if values is None:
        return []
    if isinstance(values, (str, SplittingStrategy)):
        values = [values]
    strategies = []
    unknown = []
    for value in values:
        try:
            strategies.append(SplittingStrategy(value))
        except ValueError:
            unknown.append(str(value))
    if unknown:
        raise ValidationError({"strategies": [f"unknown strategy {tag}" for tag in unknown]})
    return strategies


@dataclass
class SplittingConfiguration:
    """A named, reusable list of splitting strategies."""

    user_id: int
    name: str
    strategies: List[SplittingStrategy] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)

    def validate(self):
        errors = {}
        if self.user_id is None:
            add_error(errors, "user_id", "can't be blank")
        if is_blank(self.name):
            add_error(errors, "name", "can't be blank")
        try:
            self.strategies = parse_strategies(self.strategies)
        except ValidationError as e:
            errors.setdefault("strategies", []).extend(e.errors["strategies"])
        else:
            if not self.strategies:
                add_error(errors, "strategies", "can't be blank")
        if errors:
            raise ValidationError(errors)
        return self

    def strategy_names(self):
        return [strategy.label for strategy in self.strategies]

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "strategies": [s.value for s in self.strategies],
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            user_id=data.get("userId"),
            name=data.get("name", ""),
            strategies=parse_strategies(data.get("strategies")),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
        )
