from io import BytesIO

import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage

from models import Account, MediaAttachment, PlatformSelection, SelectionSet
from services.accounts import link_account
from services.store import Store


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "store.json")


@pytest.fixture
def store(store_path):
    """A store backed by a temp file, seeded with the default platforms."""
    store = Store(store_path)
    store.seed_platforms()
    return store


@pytest.fixture
def registry(store):
    return store.registry()


@pytest.fixture
def bluesky_only():
    return SelectionSet([
        PlatformSelection("bluesky", True),
        PlatformSelection("mastodon", False),
    ])


@pytest.fixture
def bluesky_account(store):
    return link_account(store, Account(
        user_id=1,
        platform_id="bluesky",
        username="jane.bsky.social",
        access_token="bsky-token",
        display_name="Jane",
    ))


@pytest.fixture
def mastodon_account(store):
    return link_account(store, Account(
        user_id=1,
        platform_id="mastodon",
        username="jane",
        access_token="masto-token",
        instance_url="https://mastodon.social",
    ))


@pytest.fixture
def sample_media():
    return MediaAttachment(
        name="a.jpg",
        type="image/jpeg",
        size=2048,
        url="/media/a.jpg",
        preview_url="/media/a.preview.jpg",
    )


@pytest.fixture
def make_png_upload():
    def _make(name="photo.png", size=(800, 600)):
        buf = BytesIO()
        Image.new("RGB", size, "red").save(buf, "PNG")
        buf.seek(0)
        return FileStorage(stream=buf, filename=name, content_type="image/png")
    return _make


@pytest.fixture
def png_upload(make_png_upload):
    return make_png_upload()
