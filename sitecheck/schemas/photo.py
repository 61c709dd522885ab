"""Photo references embedded in a checklist record.

A reference is a plain string value, never an object with identity:

- ``None``: empty slot
- ``data:image/...;base64,...``: local-pending, not durable yet
- ``http(s)://...``: remote-durable, a public URL into durable storage
"""
from enum import Enum
from typing import Optional

PhotoRef = Optional[str]

DATA_URL_PREFIX = "data:image/"


class PhotoState(str, Enum):
    EMPTY = "empty"
    LOCAL = "local"
    REMOTE = "remote"


def is_remote(value: PhotoRef) -> bool:
    return bool(value) and value.startswith(("http://", "https://"))


def is_local(value: PhotoRef) -> bool:
    return bool(value) and value.startswith(DATA_URL_PREFIX)


def photo_state(value: PhotoRef) -> PhotoState:
    if not value:
        return PhotoState.EMPTY
    if is_remote(value):
        return PhotoState.REMOTE
    if is_local(value):
        return PhotoState.LOCAL
    raise ValueError(f"Unrecognised photo reference: {value[:32]!r}")


def is_uploaded(value: PhotoRef) -> bool:
    return photo_state(value) is PhotoState.REMOTE


def check_photo_ref(value: PhotoRef) -> PhotoRef:
    """Validator hook: empty strings collapse to None, anything else must classify."""
    if value == "":
        return None
    photo_state(value)
    return value
