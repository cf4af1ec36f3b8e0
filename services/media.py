import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass
from typing import Optional

from PIL import Image
from werkzeug.utils import secure_filename

import config
from errors import ValidationError
from models.media import MediaAttachment

logger = logging.getLogger(__name__)

PLATFORM_MEDIA_CONSTRAINTS = {
    "bluesky": {
        "max_images": 4,
        "max_image_size": 10 * 1024 * 1024,
        "allowed_image_types": {"image/jpeg", "image/png", "image/gif"},
        "supports_video": False,
    },
    "mastodon": {
        "max_images": 4,
        "max_image_size": 16 * 1024 * 1024,
        "allowed_image_types": {"image/jpeg", "image/png", "image/gif", "image/webp"},
        "supports_video": True,
        "max_video_size": 40 * 1024 * 1024,
    },
    "threads": {
        "max_images": 10,
        "max_image_size": 8 * 1024 * 1024,
        "allowed_image_types": {"image/jpeg", "image/png"},
        "supports_video": True,
        "max_video_size": 15 * 1024 * 1024,
    },
    "nostr": {
        # Limits depend on the relay
        "max_images": None,
        "max_image_size": None,
        "allowed_image_types": {"image/jpeg", "image/png", "image/gif", "image/webp"},
        "supports_video": True,
        "max_video_size": None,
    },
}

# Ceilings applied before handing an image to a platform
PLATFORM_IMAGE_TARGETS = {
    "bluesky": {"max_dimension": 1600, "max_filesize": 1_000_000},
    "mastodon": {"max_dimension": None, "max_filesize": 8 * 1024 * 1024},
    "threads": {"max_dimension": 1440, "max_filesize": 8 * 1024 * 1024},
    "nostr": {"max_dimension": 2048, "max_filesize": 10 * 1024 * 1024},
}

_PIL_MIME_MAP = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def allowed_file(filename):
    return (
        "." in filename
        and filename.rsplit(".", 1)[1].lower() in config.ALLOWED_EXTENSIONS
    )


def get_mime_type(file_path):
    try:
        with Image.open(file_path) as img:
            fmt = (img.format or "").lower()
    except OSError:
        fmt = ""
    if fmt in _PIL_MIME_MAP:
        return _PIL_MIME_MAP[fmt]
    guessed, _ = mimetypes.guess_type(file_path)
    return guessed or "application/octet-stream"


def is_media_compatible(attachment, platform_id):
    constraints = PLATFORM_MEDIA_CONSTRAINTS.get(platform_id)
    if not constraints:
        return False

    if attachment.is_image:
        max_size = constraints["max_image_size"]
        return attachment.type in constraints["allowed_image_types"] and (
            max_size is None or attachment.size <= max_size
        )

    if attachment.is_video:
        max_size = constraints.get("max_video_size")
        return constraints["supports_video"] and (max_size is None or attachment.size <= max_size)

    return False


def compatible_media(attachments, platform_id):
    """Attachments the platform accepts, capped at its image count."""
    constraints = PLATFORM_MEDIA_CONSTRAINTS.get(platform_id, {})
    accepted = [a for a in attachments if is_media_compatible(a, platform_id)]
    max_images = constraints.get("max_images")
    if max_images is not None:
        accepted = accepted[:max_images]
    return accepted


def compress_for_platform(file_path, mime_type, platform_id):
    """Shrink an image to fit the platform's size ceilings. Returns new path."""
    target = PLATFORM_IMAGE_TARGETS.get(platform_id)
    if target is None or not mime_type.startswith("image/"):
        return file_path

    max_filesize = target["max_filesize"]
    max_dimension = target["max_dimension"]

    with Image.open(file_path) as original:
        too_large = max_dimension is not None and max(original.size) > max_dimension
        if os.path.getsize(file_path) <= max_filesize and not too_large:
            return file_path

        # Convert to RGB if needed (for JPEG saving)
        img = original.convert("RGB") if original.mode in ("RGBA", "P") else original.copy()

    if too_large:
        img.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

    compressed_path = f"{file_path}.{platform_id}.jpg"

    # Progressively reduce quality
    quality = 85
    while quality >= 20:
        img.save(compressed_path, "JPEG", quality=quality, optimize=True)
        if os.path.getsize(compressed_path) <= max_filesize:
            return compressed_path
        quality -= 10

    # Last resort: resize
    max_dim = min(max(img.size), 2048)
    while max_dim >= 512:
        img.thumbnail((max_dim, max_dim), Image.LANCZOS)
        img.save(compressed_path, "JPEG", quality=60, optimize=True)
        if os.path.getsize(compressed_path) <= max_filesize:
            return compressed_path
        max_dim -= 512

    os.remove(compressed_path)
    return file_path


@dataclass
class StoreResult:
    success: bool
    url: str = ""
    preview_url: Optional[str] = None
    name: str = ""
    mime_type: str = ""
    size: int = 0
    error: str = ""


class LocalFileStorage:
    """File storage collaborator backed by a local directory."""

    def __init__(self, upload_folder=None, base_url=None):
        self.upload_folder = upload_folder or config.UPLOAD_FOLDER
        self.base_url = (base_url if base_url is not None else config.MEDIA_BASE_URL).rstrip("/")

    def store(self, file_storage):
        """Save an uploaded file. Returns a StoreResult."""
        if not file_storage or not file_storage.filename:
            return StoreResult(success=False, error="No file provided")
        if not allowed_file(file_storage.filename):
            return StoreResult(success=False, error=f"File type not allowed: {file_storage.filename}")

        filename = secure_filename(file_storage.filename)
        unique_name = f"{uuid.uuid4().hex}_{filename}"
        file_path = os.path.join(self.upload_folder, unique_name)
        try:
            os.makedirs(self.upload_folder, exist_ok=True)
            file_storage.save(file_path)
            size = os.path.getsize(file_path)
        except OSError as e:
            logger.warning("Failed to store upload %s: %s", filename, e)
            return StoreResult(success=False, error=str(e))
        if size == 0:
            os.remove(file_path)
            return StoreResult(success=False, error=f"Empty file: {filename}")

        mime_type = get_mime_type(file_path)
        preview_url = None
        if mime_type.startswith("image/"):
            preview_url = self._make_preview(file_path)

        return StoreResult(
            success=True,
            url=self.url_for(unique_name),
            preview_url=preview_url,
            name=filename,
            mime_type=mime_type,
            size=size,
        )

    def _make_preview(self, file_path):
        preview_path = f"{os.path.splitext(file_path)[0]}.preview.jpg"
        try:
            with Image.open(file_path) as img:
                if img.mode in ("RGBA", "P"):
                    img = img.convert("RGB")
                img.thumbnail((config.PREVIEW_MAX_DIMENSION, config.PREVIEW_MAX_DIMENSION))
                img.save(preview_path, "JPEG", quality=80)
        except Exception as e:
            logger.warning("Could not create preview for %s: %s", file_path, e)
            return None
        return self.url_for(os.path.basename(preview_path))

    def url_for(self, filename):
        return f"{self.base_url}/{filename}"

    def path_for(self, url):
        return os.path.join(self.upload_folder, url.rsplit("/", 1)[-1])

    def prepare_for_platform(self, attachment, platform_id):
        """Local path of the attachment, compressed for the platform when needed."""
        return compress_for_platform(self.path_for(attachment.url), attachment.type, platform_id)

    def remove(self, attachment):
        for url in (attachment.url, attachment.preview_url):
            if not url:
                continue
            try:
                os.remove(self.path_for(url))
            except OSError:
                pass


@dataclass
class MediaUpload:
    success: bool
    attachment: Optional[MediaAttachment] = None
    error: str = ""


def upload_media(store, storage, file_storage):
    """Store a file and record it as an orphaned attachment awaiting a composition."""
    result = storage.store(file_storage)
    if not result.success:
        return MediaUpload(success=False, error=result.error)
    attachment = MediaAttachment(
        name=result.name,
        type=result.mime_type,
        size=result.size,
        url=result.url,
        preview_url=result.preview_url,
    ).validate()
    store.put("media", attachment)
    logger.info("Uploaded %s (%s)", attachment.name, attachment.humanized_size)
    return MediaUpload(success=True, attachment=attachment)


def orphaned_media(store):
    return [m for m in store.all("media") if m.owner is None]


def _check_claimable(store, attachment, owner):
    """Raise ValidationError if the attachment already belongs to another composition."""
    stored = store.find("media", attachment.id)
    for current in (attachment.owner, stored.owner if stored else None):
        if current is not None and current != owner:
            raise ValidationError({
                "media": [f"{attachment.name or attachment.id} belongs to {current.kind.value} {current.id}"]
            })


def sync_media(store, owner, attachments):
    """Make the media table hold exactly ``attachments`` for owner.

    Attachments must be unowned or already owned by ``owner``; media of
    another composition has to be copied with ``copy_for`` first.
    """
    for attachment in attachments:
        _check_claimable(store, attachment, owner)
    keep = {a.id for a in attachments}
    with store.transaction():
        for existing in store.media_for(owner):
            if existing.id not in keep:
                store.delete("media", existing.id)
        for attachment in attachments:
            attachment.owner = owner
            attachment.validate()
            store.put("media", attachment)


def delete_media_for(store, owner):
    with store.transaction():
        for attachment in store.media_for(owner):
            store.delete("media", attachment.id)


def attach_media(store, composition, media_id):
    """Move an orphaned upload onto a draft or post."""
    attachment = store.get("media", media_id)
    owner = composition.media_owner
    _check_claimable(store, attachment, owner)
    with store.transaction():
        attachment.owner = owner
        store.put("media", attachment)
        if all(m.id != attachment.id for m in composition.media):
            composition.media.append(attachment)
    return attachment


def detach_media(store, composition, media_id):
    attachment = store.get("media", media_id)
    if attachment.owner not in (None, composition.media_owner):
        raise ValidationError({"media": [f"{attachment.name} is not attached to {composition.id}"]})
    with store.transaction():
        attachment.owner = None
        store.put("media", attachment)
        composition.media = [m for m in composition.media if m.id != media_id]
    return attachment
