from __future__ import annotations

import pytest

from u2f_server import DecodeError
from u2f_server.codec import (
    RawAuthenticateResponse,
    decode_authenticate_response,
    encode_authenticate_response,
    encode_authenticate_signed_bytes,
)


def test_decode_big_endian_counter():
    raw = decode_authenticate_response(bytes.fromhex("01" "0000012c" "3045aabb"))
    assert raw == RawAuthenticateResponse(0x01, 300, bytes.fromhex("3045aabb"))


def test_decode_signature_takes_remaining_bytes():
    signature = bytes(range(72))
    raw = decode_authenticate_response(b"\x01\xff\xff\xff\xff" + signature)
    assert raw.counter == 0xFFFFFFFF
    assert raw.signature == signature


@pytest.mark.parametrize("data", [b"", b"\x01", b"\x01\x00\x00\x00"])
def test_decode_too_short(data):
    with pytest.raises(DecodeError):
        decode_authenticate_response(data)


def test_decode_missing_signature():
    with pytest.raises(DecodeError):
        decode_authenticate_response(b"\x01\x00\x00\x00\x07")


def test_encode_response_layout():
    assert encode_authenticate_response(0x01, 0x0A0B0C0D, b"sig") == (
        b"\x01\x0a\x0b\x0c\x0dsig"
    )


def test_signed_bytes_layout():
    app_id_hash = b"\xaa" * 32
    client_data_hash = b"\xcc" * 32
    signed = encode_authenticate_signed_bytes(app_id_hash, 0x01, 6, client_data_hash)
    assert len(signed) == 69
    assert signed[:32] == app_id_hash
    assert signed[32:37] == b"\x01\x00\x00\x00\x06"
    assert signed[37:] == client_data_hash


def test_signed_bytes_rejects_bad_input():
    with pytest.raises(ValueError):
        encode_authenticate_signed_bytes(b"\x00" * 31, 0x01, 1, b"\x00" * 32)
    with pytest.raises(ValueError):
        encode_authenticate_signed_bytes(b"\x00" * 32, 0x01, 1 << 32, b"\x00" * 32)
    with pytest.raises(ValueError):
        encode_authenticate_signed_bytes(b"\x00" * 32, 0x01, -1, b"\x00" * 32)
