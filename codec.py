# codec.py
"""
Reversible obfuscation for identifiers exposed to API consumers.

Server ids pack the upstream (id, i, q) mirror parameters into one opaque,
URL-safe token. The same character substitution keeps upstream action
names out of cleartext. None of this is encryption.
"""
import base64
import binascii
import re
import string
from typing import Tuple

from errors import MalformedIdError

_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase
_SHIFT = 13
_SCRAMBLE = str.maketrans(_ALPHABET, _ALPHABET[_SHIFT:] + _ALPHABET[:_SHIFT])
_UNSCRAMBLE = str.maketrans(_ALPHABET[_SHIFT:] + _ALPHABET[:_SHIFT], _ALPHABET)

DELIMITER = "-"
_TOKEN_RE = re.compile(r'^[A-Za-z0-9_-]+$')


def scramble(text: str) -> str:
    return text.translate(_SCRAMBLE)


def unscramble(text: str) -> str:
    return text.translate(_UNSCRAMBLE)


def encode_server_id(media_id: str, instance_index: str, quality_index: str) -> str:
    parts = (str(media_id), str(instance_index), str(quality_index))
    for part in parts:
        if not part or DELIMITER in part:
            raise ValueError(f"Cannot encode server id component: {part!r}")
    raw = scramble(DELIMITER.join(parts)).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_server_id(server_id: str) -> Tuple[str, str, str]:
    """Inverse of encode_server_id. Raises MalformedIdError instead of guessing."""
    if not server_id or not _TOKEN_RE.match(server_id):
        raise MalformedIdError(f"Invalid server id: {server_id!r}")
    padded = server_id + "=" * (-len(server_id) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise MalformedIdError(f"Invalid server id: {server_id!r}") from e

    parts = unscramble(raw).split(DELIMITER)
    if len(parts) != 3 or not all(part.isprintable() and part for part in parts):
        raise MalformedIdError(f"Invalid server id: {server_id!r}")
    media_id, instance_index, quality_index = parts
    # Only the canonical spelling is accepted; base64 tolerates stray trailing bits
    if encode_server_id(media_id, instance_index, quality_index) != server_id:
        raise MalformedIdError(f"Invalid server id: {server_id!r}")
    return media_id, instance_index, quality_index
