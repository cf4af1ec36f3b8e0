from datetime import timedelta

import pytest

from errors import ValidationError
from models import (
    Account,
    Draft,
    MediaAttachment,
    Owner,
    OwnerKind,
    PlatformSelection,
    Post,
    PostStatus,
    SelectionSet,
    SplittingConfiguration,
    SplittingStrategy,
    default_selections,
)
from models.common import utc_now
from models.splitting import parse_strategies


class TestSelectionSet:
    def test_round_trip_preserves_order_and_accounts(self):
        data = [
            {"id": "mastodon", "isSelected": True, "accounts": [3, 1]},
            {"id": "bluesky", "isSelected": False},
        ]
        selections = SelectionSet.from_list(data)
        assert selections.to_list() == data
        assert SelectionSet.from_json(selections.to_json()) == selections

    def test_duplicate_platform_rejected(self):
        with pytest.raises(ValidationError) as exc:
            SelectionSet([PlatformSelection("bluesky", True), PlatformSelection("bluesky", False)])
        assert exc.value.errors["selections"] == ["duplicate platform bluesky"]

    @pytest.mark.parametrize("payload", [
        {"id": "bluesky"},
        [{"isSelected": True}],
        [{"id": "bluesky", "isSelected": "yes"}],
        [{"id": "bluesky", "isSelected": True, "accounts": ["1"]}],
        [{"id": "bluesky", "isSelected": True, "accounts": [True]}],
        ["bluesky"],
    ])
    def test_malformed_payload_rejected(self, payload):
        with pytest.raises(ValidationError):
            SelectionSet.from_list(payload)

    def test_invalid_json_rejected(self):
        with pytest.raises(ValidationError):
            SelectionSet.from_json("[{")

    def test_updates_return_new_sets(self):
        selections = SelectionSet([PlatformSelection("bluesky", False)])
        toggled = selections.toggled("bluesky")
        assert selections.is_selected("bluesky") is False
        assert toggled.is_selected("bluesky") is True

    def test_update_appends_missing_platform(self):
        selections = SelectionSet([PlatformSelection("bluesky", True)]).with_selected("nostr")
        assert selections.selected_platforms() == ["bluesky", "nostr"]

    def test_toggled_account(self):
        selections = SelectionSet([PlatformSelection("mastodon", True)])
        selections = selections.toggled_account("mastodon", 7)
        assert selections.get("mastodon").accounts == (7,)
        selections = selections.toggled_account("mastodon", 7)
        assert selections.get("mastodon").accounts == ()

    def test_default_selections(self, registry):
        selections = default_selections(registry)
        assert [s.id for s in selections] == ["bluesky", "mastodon", "threads", "nostr"]
        assert selections.selected_platforms() == ["bluesky", "mastodon", "threads"]

    def test_validate_unknown_selected_platform(self, registry):
        selections = SelectionSet([PlatformSelection("myspace", True)])
        with pytest.raises(ValidationError):
            selections.validate(registry)
        # Unselected unknown entries are tolerated
        SelectionSet([PlatformSelection("myspace", False)]).validate(registry)


class TestMediaAttachment:
    def test_predicates(self, sample_media):
        assert sample_media.is_image is True
        assert sample_media.is_video is False
        assert sample_media.is_orphaned is True
        assert sample_media.file_extension == ".jpg"
        assert sample_media.humanized_size == "2.0 KB"

    def test_humanized_size_units(self):
        media = MediaAttachment(name="v.mp4", type="video/mp4", size=500, url="/m/v.mp4")
        assert media.humanized_size == "500 B"
        media.size = 3 * 1024 * 1024
        assert media.humanized_size == "3.0 MB"
        assert media.is_video is True

    @pytest.mark.parametrize("field_name, value", [
        ("name", ""),
        ("type", " "),
        ("url", ""),
        ("size", 0),
        ("size", "12"),
    ])
    def test_validation(self, sample_media, field_name, value):
        setattr(sample_media, field_name, value)
        with pytest.raises(ValidationError) as exc:
            sample_media.validate()
        assert field_name in exc.value.errors

    def test_descriptor_shape(self, sample_media):
        descriptor = sample_media.to_descriptor()
        assert descriptor == {
            "id": sample_media.id,
            "name": "a.jpg",
            "type": "image/jpeg",
            "size": 2048,
            "url": "/media/a.jpg",
            "previewUrl": "/media/a.preview.jpg",
        }
        restored = MediaAttachment.from_descriptor(descriptor, owner=Owner.draft("d1"))
        assert restored.id == sample_media.id
        assert restored.owner == Owner(OwnerKind.DRAFT, "d1")

    def test_descriptor_without_preview(self):
        media = MediaAttachment(name="s.mp3", type="audio/mpeg", size=10, url="/m/s.mp3")
        assert "previewUrl" not in media.to_descriptor()
        assert media.is_audio is True

    def test_copy_for_gets_new_identity(self, sample_media):
        copy = sample_media.copy_for(Owner.post("p1"))
        assert copy.id != sample_media.id
        assert copy.owner == Owner.post("p1")
        assert sample_media.owner is None
        assert copy.url == sample_media.url

    def test_owner_must_have_known_type(self):
        with pytest.raises(ValidationError):
            Owner.from_dict({"type": "Comment", "id": "x"})


class TestAccount:
    def test_valid_account(self, registry):
        account = Account(user_id=1, platform_id="mastodon", username="jane",
                          access_token="t", instance_url="https://mastodon.social/")
        account.validate(registry)
        assert account.handle == "@jane@mastodon.social"

    def test_requires_fields(self, registry):
        account = Account(user_id=1, platform_id="myspace", username="", access_token="")
        with pytest.raises(ValidationError) as exc:
            account.validate(registry)
        assert set(exc.value.errors) == {"platform_id", "username", "access_token"}

    def test_expiry(self):
        account = Account(user_id=1, platform_id="bluesky", username="jane", access_token="t")
        assert account.is_expired() is False
        account.expires_at = utc_now() - timedelta(minutes=1)
        assert account.is_expired() is True

    def test_token_not_in_repr(self):
        account = Account(user_id=1, platform_id="bluesky", username="jane", access_token="secret")
        assert "secret" not in repr(account)


class TestDraft:
    def test_to_post_copies_media(self, bluesky_only, sample_media):
        draft = Draft(user_id=1, content="hello", selections=bluesky_only, media=[sample_media])
        sample_media.owner = Owner.draft(draft.id)
        post = draft.to_post()

        assert post.content == "hello"
        assert post.selections == bluesky_only
        assert post.status == PostStatus.PENDING
        assert len(post.media) == 1
        assert post.media[0].id != sample_media.id
        assert post.media[0].owner == Owner.post(post.id)
        assert draft.media[0].owner == Owner.draft(draft.id)

    def test_blank_content_invalid(self, registry, bluesky_only):
        with pytest.raises(ValidationError) as exc:
            Draft(user_id=1, content="  ", selections=bluesky_only).validate(registry)
        assert exc.value.errors["content"] == ["can't be blank"]

    def test_round_trip(self, bluesky_only):
        draft = Draft(user_id=1, content="a\n\n---\n\nb", selections=bluesky_only, is_thread=True)
        restored = Draft.from_dict(draft.to_dict())
        assert restored.is_thread is True
        assert restored.selections == bluesky_only
        assert restored.created_at == draft.created_at


class TestPost:
    def test_status_transitions(self):
        post = Post(user_id=1, content="hi")
        post.transition_to(PostStatus.FAILED)
        post.transition_to("pending")
        post.transition_to(PostStatus.PUBLISHED)
        assert post.status == PostStatus.PUBLISHED
        with pytest.raises(ValidationError):
            post.transition_to(PostStatus.PENDING)

    def test_pending_cannot_go_back_to_pending(self):
        with pytest.raises(ValidationError):
            Post(user_id=1, content="hi").transition_to(PostStatus.PENDING)

    def test_child_needs_positive_index(self, registry, bluesky_only):
        post = Post(user_id=1, content="hi", selections=bluesky_only,
                    thread_parent_id="root", thread_index=0)
        with pytest.raises(ValidationError) as exc:
            post.validate(registry)
        assert "thread_index" in exc.value.errors

    def test_negative_index_invalid(self, registry, bluesky_only):
        post = Post(user_id=1, content="hi", selections=bluesky_only, thread_index=-1)
        with pytest.raises(ValidationError):
            post.validate(registry)

    def test_cannot_parent_itself(self, registry, bluesky_only):
        post = Post(user_id=1, content="hi", selections=bluesky_only, thread_index=1)
        post.thread_parent_id = post.id
        with pytest.raises(ValidationError) as exc:
            post.validate(registry)
        assert "thread_parent_id" in exc.value.errors

    def test_round_trip(self, bluesky_only):
        post = Post(user_id=1, content="hi", selections=bluesky_only,
                    thread_parent_id="root", thread_index=2)
        data = post.to_dict()
        assert data["threadParentId"] == "root"
        assert data["threadIndex"] == 2
        assert data["status"] == "pending"
        restored = Post.from_dict(data)
        assert restored.thread_index == 2
        assert restored.status == PostStatus.PENDING


class TestSplittingConfiguration:
    def test_empty_strategies_invalid(self):
        configuration = SplittingConfiguration(user_id=1, name="default", strategies=[])
        with pytest.raises(ValidationError) as exc:
            configuration.validate()
        assert exc.value.errors["strategies"] == ["can't be blank"]

    def test_unknown_strategy_invalid(self):
        configuration = SplittingConfiguration(user_id=1, name="x", strategies=["semantic", "haiku"])
        with pytest.raises(ValidationError) as exc:
            configuration.validate()
        assert exc.value.errors["strategies"] == ["unknown strategy haiku"]

    def test_strategy_names(self):
        configuration = SplittingConfiguration(
            user_id=1, name="x", strategies=["semantic", "retain_hashtags"]
        ).validate()
        assert configuration.strategies == [SplittingStrategy.SEMANTIC, SplittingStrategy.RETAIN_HASHTAGS]
        assert configuration.strategy_names() == ["Semantic splitting", "Hashtag retention"]

    def test_parse_strategies_accepts_single_value(self):
        assert parse_strategies("sentence") == [SplittingStrategy.SENTENCE]
        assert parse_strategies(None) == []
