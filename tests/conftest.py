import json

import pytest

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from u2f_server import AuthenticateResponse, DeviceRegistration
from u2f_server.client_data import TYPE_AUTHENTICATE
from u2f_server.codec import (
    USER_PRESENT_FLAG,
    encode_authenticate_response,
    encode_authenticate_signed_bytes,
)

APP_ID = "https://example.com"
ORIGIN = "https://example.com"
KEY_HANDLE = "kh1"
CHALLENGE = "abc123"


def _sha256(data: bytes) -> bytes:
    h = hashes.Hash(hashes.SHA256())
    h.update(data)
    return h.finalize()


def raw_public_key(private_key) -> bytes:
    return private_key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )


def make_client_data(
    *, typ=TYPE_AUTHENTICATE, challenge=CHALLENGE, origin=ORIGIN
) -> bytes:
    return json.dumps({"typ": typ, "challenge": challenge, "origin": origin}).encode()


def make_response(
    private_key,
    *,
    counter,
    user_presence=USER_PRESENT_FLAG,
    app_id=APP_ID,
    client_data=None,
    key_handle=KEY_HANDLE,
) -> AuthenticateResponse:
    """Sign a response the way a U2F authenticator does."""
    if client_data is None:
        client_data = make_client_data()
    signed = encode_authenticate_signed_bytes(
        _sha256(app_id.encode()), user_presence, counter, _sha256(client_data)
    )
    signature = private_key.sign(signed, ec.ECDSA(hashes.SHA256()))
    return AuthenticateResponse(
        client_data=client_data,
        signature_data=encode_authenticate_response(user_presence, counter, signature),
        key_handle=key_handle,
    )


@pytest.fixture
def private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def device(private_key):
    return DeviceRegistration(KEY_HANDLE, raw_public_key(private_key), counter=5)
