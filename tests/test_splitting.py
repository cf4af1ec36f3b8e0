import json
from unittest.mock import MagicMock, patch

import pytest

from errors import NotFoundError, ValidationError
from models import SplittingConfiguration, SplittingStrategy
from services.splitting import (
    AnthropicSplitter,
    configurations_for_user,
    delete_configuration,
    oversized_fragments,
    save_configuration,
    split_with_configuration,
)


def _mock_response(text):
    mock_message = MagicMock()
    mock_message.content = [MagicMock(text=text)]
    return mock_message


@pytest.fixture
def splitter(registry):
    return AnthropicSplitter(registry, api_key="test-key", model="test-model", max_tokens=512)


class TestAnthropicSplitter:
    @patch("services.splitting.anthropic")
    def test_splits_into_fragments(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response(json.dumps({
            "fragments": ["First part.", "Second part."],
            "reasoning": "Split at the sentence boundary.",
        }))

        result = splitter.split("First part. Second part.", "bluesky", ["sentence"])

        assert result.success is True
        assert result.fragments == ["First part.", "Second part."]
        assert result.strategies == [SplittingStrategy.SENTENCE]
        assert result.reasoning == "Split at the sentence boundary."

        mock_anthropic.Anthropic.assert_called_once_with(api_key="test-key")
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 512
        assert "at most 300 characters" in kwargs["system"]
        assert "Sentence-based splitting" in kwargs["system"]
        assert kwargs["messages"] == [{"role": "user", "content": "First part. Second part."}]

    @patch("services.splitting.anthropic")
    def test_strips_code_fences(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response(
            '```json\n{"fragments": ["one", "two"], "reasoning": ""}\n```'
        )

        result = splitter.split("one two", "mastodon", ["semantic"])

        assert result.success is True
        assert result.fragments == ["one", "two"]

    @patch("services.splitting.anthropic")
    def test_unparseable_response(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response("Here are your posts!")

        result = splitter.split("text", "bluesky", ["semantic"])

        assert result.success is False
        assert result.error == "Could not parse AI response"

    @patch("services.splitting.anthropic")
    def test_empty_fragment_list(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response('{"fragments": ["  "]}')

        result = splitter.split("text", "bluesky", ["semantic"])

        assert result.success is False

    @patch("services.splitting.anthropic")
    def test_api_error(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.side_effect = Exception("API rate limit")

        result = splitter.split("text", "bluesky", ["semantic"])

        assert result.success is False
        assert "rate limit" in result.error

    def test_missing_api_key(self, registry):
        splitter = AnthropicSplitter(registry, api_key="")
        result = splitter.split("text", "bluesky", ["semantic"])
        assert result.success is False
        assert result.error == "ANTHROPIC_API_KEY not configured"

    def test_unknown_strategy(self, splitter):
        result = splitter.split("text", "bluesky", ["limerick"])
        assert result.success is False
        assert "unknown strategy limerick" in result.error

    @patch("services.splitting.anthropic")
    def test_unknown_platform(self, mock_anthropic, splitter):
        result = splitter.split("text", "myspace", ["semantic"])
        assert result.success is False
        mock_anthropic.Anthropic.return_value.messages.create.assert_not_called()

    @patch("services.splitting.anthropic")
    def test_split_with_configuration(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response('{"fragments": ["a #tag"]}')
        configuration = SplittingConfiguration(user_id=1, name="tags", strategies=["retain_hashtags"]).validate()

        result = split_with_configuration(splitter, "a #tag", "bluesky", configuration)

        assert result.fragments == ["a #tag"]
        assert "Hashtag retention" in mock_client.messages.create.call_args.kwargs["system"]


class TestOptimize:
    @patch("services.splitting.anthropic")
    def test_rewrites_for_platform(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response(json.dumps({
            "optimized_content": "  Shorter take #news  ",
            "reasoning": "Trimmed the intro.",
        }))

        result = splitter.optimize("A much longer take on the news #news", "bluesky")

        assert result.success is True
        assert result.content == "Shorter take #news"
        assert result.reasoning == "Trimmed the intro."
        assert result.over_limit is False

        kwargs = mock_client.messages.create.call_args.kwargs
        assert "works well on Bluesky" in kwargs["system"]
        assert "at most 300 characters" in kwargs["system"]
        assert kwargs["messages"] == [{"role": "user", "content": "A much longer take on the news #news"}]

    @patch("services.splitting.anthropic")
    def test_reports_rewrite_over_limit(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response(
            '```json\n{"optimized_content": "' + "a" * 301 + '"}\n```'
        )

        result = splitter.optimize("text", "bluesky")

        assert result.success is True
        assert result.over_limit is True

    @patch("services.splitting.anthropic")
    def test_unparseable_response(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response("Sure! Here is a better post.")

        result = splitter.optimize("text", "mastodon")

        assert result.success is False
        assert result.error == "Could not parse AI response"

    @patch("services.splitting.anthropic")
    def test_response_without_content(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.return_value = _mock_response('{"reasoning": "nothing to do"}')

        result = splitter.optimize("text", "mastodon")

        assert result.success is False
        assert result.error == "AI response has no optimized content"

    @patch("services.splitting.anthropic")
    def test_api_error(self, mock_anthropic, splitter):
        mock_client = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        mock_client.messages.create.side_effect = Exception("API rate limit")

        result = splitter.optimize("text", "bluesky")

        assert result.success is False
        assert "rate limit" in result.error

    @patch("services.splitting.anthropic")
    def test_blank_content(self, mock_anthropic, splitter):
        result = splitter.optimize("   ", "bluesky")
        assert result.success is False
        assert result.error == "Content is required"
        mock_anthropic.Anthropic.assert_not_called()

    def test_missing_api_key(self, registry):
        result = AnthropicSplitter(registry, api_key="").optimize("text", "bluesky")
        assert result.success is False
        assert result.error == "ANTHROPIC_API_KEY not configured"

    @patch("services.splitting.anthropic")
    def test_unknown_platform(self, mock_anthropic, splitter):
        result = splitter.optimize("text", "myspace")
        assert result.success is False
        mock_anthropic.Anthropic.return_value.messages.create.assert_not_called()


def test_oversized_fragments(registry):
    fragments = ["short", "a" * 301, "a" * 300]
    assert oversized_fragments(fragments, "bluesky", registry) == [1]
    assert oversized_fragments(fragments, "mastodon", registry) == []


class TestConfigurations:
    def test_save_and_list(self, store):
        first = save_configuration(store, SplittingConfiguration(user_id=1, name="a", strategies=["semantic"]))
        second = save_configuration(store, SplittingConfiguration(user_id=1, name="b", strategies=["sentence"]))
        save_configuration(store, SplittingConfiguration(user_id=2, name="c", strategies=["sentence"]))
        second.created_at = first.created_at.replace(year=first.created_at.year + 1)

        assert [c.id for c in configurations_for_user(store, 1)] == [first.id, second.id]

    def test_empty_strategies_not_saved(self, store):
        with pytest.raises(ValidationError):
            save_configuration(store, SplittingConfiguration(user_id=1, name="empty", strategies=[]))
        assert store.all("splitting_configurations") == []

    def test_delete(self, store):
        configuration = save_configuration(
            store, SplittingConfiguration(user_id=1, name="a", strategies=["semantic"])
        )
        delete_configuration(store, configuration.id)
        assert configurations_for_user(store, 1) == []
        with pytest.raises(NotFoundError):
            delete_configuration(store, configuration.id)
