import base64
import re

import pytest

import config
from codec import decode_server_id, encode_server_id, scramble, unscramble
from errors import MalformedIdError


@pytest.mark.parametrize("triple", [
    ("158311", "0", "720p"),
    ("9", "12", "360p"),
    ("abc_DEF", "x", "1080p"),
])
def test_decode_reverses_encode(triple):
    assert decode_server_id(encode_server_id(*triple)) == triple


def test_encoded_id_is_url_path_safe():
    server_id = encode_server_id("158311", "2", "480p")

    assert re.match(r'^[A-Za-z0-9_-]+$', server_id)
    assert "158311" not in server_id


def test_encode_is_deterministic():
    assert encode_server_id("1", "2", "720p") == encode_server_id("1", "2", "720p")


@pytest.mark.parametrize("component", ["", "12-34"])
def test_encode_rejects_unencodable_components(component):
    with pytest.raises(ValueError):
        encode_server_id(component, "0", "720p")


def _token(raw: str) -> str:
    return base64.urlsafe_b64encode(scramble(raw).encode()).decode().rstrip("=")


@pytest.mark.parametrize("server_id", [
    "",
    "not a valid id!",
    "a",
    "abcd",
    _token("onlyonepart"),
    _token("1-2"),
    _token("1-2-3-4"),
    _token("1--720p"),
])
def test_decode_rejects_foreign_ids(server_id):
    with pytest.raises(MalformedIdError):
        decode_server_id(server_id)


def test_malformed_id_error_is_a_value_error():
    with pytest.raises(ValueError):
        decode_server_id("%%%")


def test_scramble_shifts_alphanumerics_only():
    assert scramble("abc") == "nop"
    assert scramble("0-9") == "d-m"
    assert unscramble(scramble("Hello, World 42")) == "Hello, World 42"


def test_configured_actions_unscramble_to_hex_names():
    assert re.match(r'^[0-9a-f]{32}$', unscramble(config.NONCE_ACTION))
    assert re.match(r'^[0-9a-f]{32}$', unscramble(config.EMBED_ACTION))
    assert unscramble(config.NONCE_ACTION) != unscramble(config.EMBED_ACTION)
