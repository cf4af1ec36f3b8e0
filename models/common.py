import uuid
from datetime import datetime, timezone


def new_id():
    return str(uuid.uuid4())


def utc_now():
    return datetime.now(timezone.utc)


def format_timestamp(value):
    return value.isoformat() if value is not None else None


def parse_timestamp(value):
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def add_error(errors, field, message):
    errors.setdefault(field, []).append(message)


def is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())
