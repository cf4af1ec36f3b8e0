import logging
import os
from dotenv import load_dotenv

load_dotenv()

_BASE_DIR = os.path.dirname(os.path.abspath(__file__))

DATA_DIR = os.getenv("COMPOSER_DATA_DIR", os.path.join(_BASE_DIR, "data"))
STORE_FILE = os.path.join(DATA_DIR, "store.json")
UPLOAD_FOLDER = os.path.join(DATA_DIR, "uploads")
MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media").rstrip("/")

MAX_IMAGES = 4
ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "mp4", "mov", "mp3", "m4a"}
PREVIEW_MAX_DIMENSION = 400

# Fraction of a platform's limit at which the counter turns to "warning"
WARNING_THRESHOLD = 0.9

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
SPLIT_MODEL = os.getenv("SPLIT_MODEL", "claude-haiku-4-5-20251001")
SPLIT_MAX_TOKENS = int(os.getenv("SPLIT_MAX_TOKENS", "2048"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def anthropic_configured():
    return bool(ANTHROPIC_API_KEY)


def configure_logging(level=None):
    """Install a root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level or LOG_LEVEL)
