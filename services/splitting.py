import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

import anthropic

import config
from errors import ValidationError
from models.splitting import parse_strategies
from services.validation import count_characters

logger = logging.getLogger(__name__)

SPLIT_PROMPT = """You split long social media text into a thread of posts for {platform}.

Rules:
- Every post must be at most {limit} characters.
- Keep the original wording; do not add commentary, numbering or hashtags that were not in the text.
- Keep the posts in the original order and lose no content.
{strategy_rules}

Respond with ONLY a JSON object (no markdown, no code fences):
{{"fragments": ["first post", "second post", ...], "reasoning": "one sentence on how you split it"}}"""

OPTIMIZE_PROMPT = """You rewrite a social media post so it works well on {platform}.

Rules:
- The result must be at most {limit} characters.
- Keep the meaning, links, @mentions and hashtags of the original.
- Match the tone and conventions of {platform}; do not add a preamble or commentary.

Respond with ONLY a JSON object (no markdown, no code fences):
{{"optimized_content": "the rewritten post", "reasoning": "one sentence on what you changed"}}"""


@dataclass
class SplitResult:
    success: bool
    fragments: List[str] = field(default_factory=list)
    strategies: list = field(default_factory=list)
    reasoning: str = ""
    error: str = ""


@dataclass
class OptimizeResult:
    success: bool
    content: str = ""
    reasoning: str = ""
    over_limit: bool = False
    error: str = ""


class Splitter(ABC):
    """Text-splitting collaborator."""

    @abstractmethod
    def split(self, content, platform_id, strategies):
        """Split content into ordered fragments for platform_id. Returns a SplitResult."""
        pass


def _strip_code_fences(text):
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


class AnthropicSplitter(Splitter):
    def __init__(self, registry, api_key=None, model=None, max_tokens=None):
        self.registry = registry
        self.api_key = api_key if api_key is not None else config.ANTHROPIC_API_KEY
        self.model = model or config.SPLIT_MODEL
        self.max_tokens = max_tokens or config.SPLIT_MAX_TOKENS

    def _ask(self, system, content):
        """Send content with a system prompt and return the JSON object the model replied with."""
        client = anthropic.Anthropic(api_key=self.api_key)
        message = client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system,
            messages=[{"role": "user", "content": content}],
        )
        return json.loads(_strip_code_fences(message.content[0].text.strip()))

    def build_prompt(self, platform_id, strategies):
        rules = "\n".join(f"- {s.label}: {s.description}" for s in strategies)
        return SPLIT_PROMPT.format(
            platform=self.registry.name_for(platform_id),
            limit=self.registry.limit_for(platform_id),
            strategy_rules=rules,
        )

    def split(self, content, platform_id, strategies):
        try:
            strategies = parse_strategies(strategies)
        except ValidationError as e:
            return SplitResult(success=False, error=str(e))
        if not self.api_key:
            return SplitResult(success=False, strategies=strategies, error="ANTHROPIC_API_KEY not configured")

        try:
            data = self._ask(self.build_prompt(platform_id, strategies), content)
            fragments = data.get("fragments") if isinstance(data, dict) else None
            if not isinstance(fragments, list) or not all(isinstance(f, str) for f in fragments):
                return SplitResult(success=False, strategies=strategies, error="AI response has no fragment list")
            fragments = [f for f in fragments if f.strip()]
            if not fragments:
                return SplitResult(success=False, strategies=strategies, error="AI response has no fragments")
            return SplitResult(
                success=True,
                fragments=fragments,
                strategies=strategies,
                reasoning=data.get("reasoning", ""),
            )
        except json.JSONDecodeError:
            logger.warning("Could not parse split response for %s", platform_id)
            return SplitResult(success=False, strategies=strategies, error="Could not parse AI response")
        except Exception as e:
            logger.warning("Splitting for %s failed: %s", platform_id, e)
            return SplitResult(success=False, strategies=strategies, error=str(e))

    def optimize(self, content, platform_id):
        """Rewrite content for one platform. Returns an OptimizeResult.

        The rewrite is not guaranteed to fit; ``over_limit`` reports whether
        it still exceeds the platform's character limit.
        """
        if not content or not content.strip():
            return OptimizeResult(success=False, error="Content is required")
        if not self.api_key:
            return OptimizeResult(success=False, error="ANTHROPIC_API_KEY not configured")

        try:
            limit = self.registry.limit_for(platform_id)
            prompt = OPTIMIZE_PROMPT.format(platform=self.registry.name_for(platform_id), limit=limit)
            data = self._ask(prompt, content)
            optimized = data.get("optimized_content") if isinstance(data, dict) else None
            if not isinstance(optimized, str) or not optimized.strip():
                return OptimizeResult(success=False, error="AI response has no optimized content")
            optimized = optimized.strip()
            return OptimizeResult(
                success=True,
                content=optimized,
                reasoning=data.get("reasoning", ""),
                over_limit=count_characters(optimized) > limit,
            )
        except json.JSONDecodeError:
            logger.warning("Could not parse optimize response for %s", platform_id)
            return OptimizeResult(success=False, error="Could not parse AI response")
        except Exception as e:
            logger.warning("Optimizing for %s failed: %s", platform_id, e)
            return OptimizeResult(success=False, error=str(e))


def split_with_configuration(splitter, content, platform_id, configuration):
    return splitter.split(content, platform_id, configuration.strategies)


def oversized_fragments(fragments, platform_id, registry):
    """Indexes of fragments that still exceed the platform limit."""
    limit = registry.limit_for(platform_id)
    return [i for i, fragment in enumerate(fragments) if count_characters(fragment) > limit]


# --- saved configurations ---

def save_configuration(store, configuration):
    configuration.validate()
    store.put("splitting_configurations", configuration)
    logger.info("Saved splitting configuration %r for user %s", configuration.name, configuration.user_id)
    return configuration


def configurations_for_user(store, user_id):
    configurations = [c for c in store.all("splitting_configurations") if c.user_id == user_id]
    return sorted(configurations, key=lambda c: c.created_at)


def delete_configuration(store, configuration_id):
    store.get("splitting_configurations", configuration_id)
    store.delete("splitting_configurations", configuration_id)
