from __future__ import annotations

import hashlib
import json
from dataclasses import replace

import pytest

from u2f_server import (
    AuthenticateResponse,
    ClientDataError,
    Crypto,
    DecodeError,
    InvalidSignatureError,
    ReplayError,
    StartedAuthentication,
    UnsupportedKeyError,
    UserPresenceError,
)
from u2f_server.client_data import TYPE_REGISTER
from u2f_server.codec import encode_authenticate_response

from conftest import APP_ID, CHALLENGE, KEY_HANDLE, make_client_data, make_response


def _started(origins=(APP_ID,), crypto=None) -> StartedAuthentication:
    return StartedAuthentication("V2", CHALLENGE, APP_ID, KEY_HANDLE, origins, crypto)


class RecordingCrypto(Crypto):
    """Deterministic crypto which accepts one expected message."""

    def __init__(self, accept=True):
        self.accept = accept
        self.verified = []

    def hash(self, data):
        if isinstance(data, str):
            data = data.encode("utf-8")
        return hashlib.sha256(data).digest()

    def decode_public_key(self, data):
        return ("key", bytes(data))

    def verify(self, public_key, message, signature):
        self.verified.append((public_key, message, signature))
        if not self.accept:
            raise InvalidSignatureError("rejected")


def test_accepts_valid_response(private_key, device):
    response = make_response(private_key, counter=6)
    assert _started().finish(response, device) == 7


def test_scenario_accept_returns_next_counter(private_key, device):
    # Stored counter 5, authenticator reports 6.
    response = make_response(private_key, counter=6)
    started = StartedAuthentication(
        "V2", "abc123", "https://example.com", "kh1", {"https://example.com"}
    )
    assert started.finish(response, device) == 6 + 1


def test_scenario_replay_equal_counter(private_key, device):
    response = make_response(private_key, counter=5)
    with pytest.raises(ReplayError):
        _started().finish(response, device)
    assert device.counter == 5


def test_scenario_origin_mismatch_skips_signature(private_key, device):
    crypto = RecordingCrypto()
    response = make_response(
        private_key, counter=6, client_data=make_client_data(origin="https://evil.example")
    )
    with pytest.raises(ClientDataError):
        _started(crypto=crypto).finish(response, device)
    assert crypto.verified == []


@pytest.mark.parametrize("counter", [0, 1, 4, 5])
def test_rejects_stale_counter_with_valid_signature(private_key, device, counter):
    response = make_response(private_key, counter=counter)
    with pytest.raises(ReplayError):
        _started().finish(response, device)


def test_counter_is_compared_unsigned(private_key, device):
    response = make_response(private_key, counter=0xFFFFFFFF)
    assert _started().finish(response, device) == 0x100000000

    high = replace(device, counter=0xFFFFFFFF)
    with pytest.raises(ReplayError):
        _started().finish(make_response(private_key, counter=0), high)


@pytest.mark.parametrize("flag", [0x00, 0x02, 0x03, 0x05, 0x81, 0xFF])
def test_rejects_user_presence_other_than_present(private_key, device, flag):
    response = make_response(private_key, counter=6, user_presence=flag)
    with pytest.raises(UserPresenceError):
        _started().finish(response, device)


def test_user_presence_checked_before_counter(private_key, device):
    response = make_response(private_key, counter=1, user_presence=0)
    with pytest.raises(UserPresenceError):
        _started().finish(response, device)


def test_rejects_disallowed_origin(private_key, device):
    response = make_response(
        private_key,
        counter=6,
        client_data=make_client_data(origin="https://example.com.evil.example"),
    )
    with pytest.raises(ClientDataError):
        _started().finish(response, device)


def test_accepts_non_canonical_allowed_origin(private_key, device):
    response = make_response(
        private_key, counter=6, client_data=make_client_data(origin="https://EXAMPLE.com:443")
    )
    assert _started(origins=["HTTPS://example.com/login"]).finish(response, device) == 7


def test_rejects_registration_client_data(private_key, device):
    response = make_response(
        private_key, counter=6, client_data=make_client_data(typ=TYPE_REGISTER)
    )
    with pytest.raises(ClientDataError):
        _started().finish(response, device)


def test_rejects_other_challenge(private_key, device):
    response = make_response(
        private_key, counter=6, client_data=make_client_data(challenge="abc1234")
    )
    with pytest.raises(ClientDataError):
        _started().finish(response, device)


def test_rejects_signature_by_other_key(private_key, device):
    from cryptography.hazmat.primitives.asymmetric import ec

    other_key = ec.generate_private_key(ec.SECP256R1())
    response = make_response(other_key, counter=6)
    with pytest.raises(InvalidSignatureError):
        _started().finish(response, device)


def test_rejects_signature_for_other_app_id(private_key, device):
    response = make_response(private_key, counter=6, app_id="https://other.example")
    with pytest.raises(InvalidSignatureError):
        _started().finish(response, device)


def test_signature_covers_exact_client_data_bytes(private_key, device):
    client_data = make_client_data()
    response = make_response(private_key, counter=6, client_data=client_data)
    # Same JSON content, different bytes.
    reformatted = json.dumps(json.loads(client_data), indent=2).encode()
    tampered = replace(response, client_data=reformatted)
    with pytest.raises(InvalidSignatureError):
        _started().finish(tampered, device)


def test_rejects_tampered_counter(private_key, device):
    response = make_response(private_key, counter=6)
    signature = response.signature_data[5:]
    tampered = replace(
        response, signature_data=encode_authenticate_response(0x01, 9, signature)
    )
    with pytest.raises(InvalidSignatureError):
        _started().finish(tampered, device)


def test_rejects_malformed_signature(private_key, device):
    response = make_response(private_key, counter=6)
    tampered = replace(
        response, signature_data=encode_authenticate_response(0x01, 6, b"\x30\x02\x01")
    )
    with pytest.raises(InvalidSignatureError):
        _started().finish(tampered, device)


def test_rejects_short_signature_data(private_key, device):
    response = replace(make_response(private_key, counter=6), signature_data=b"\x01\x00\x00")
    with pytest.raises(DecodeError):
        _started().finish(response, device)


def test_rejects_undecodable_public_key(private_key, device):
    response = make_response(private_key, counter=6)
    with pytest.raises(UnsupportedKeyError):
        _started().finish(response, replace(device, public_key=b"\x04" + b"\x00" * 64))


def test_signed_bytes_passed_to_injected_crypto(device):
    crypto = RecordingCrypto()
    client_data = make_client_data()
    response = AuthenticateResponse(
        client_data=client_data,
        signature_data=encode_authenticate_response(0x01, 0x01020304, b"sig"),
        key_handle=KEY_HANDLE,
    )
    assert _started(crypto=crypto).finish(response, device) == 0x01020305

    [(public_key, message, signature)] = crypto.verified
    assert public_key == ("key", device.public_key)
    assert signature == b"sig"
    assert message == (
        hashlib.sha256(APP_ID.encode()).digest()
        + b"\x01\x01\x02\x03\x04"
        + hashlib.sha256(client_data).digest()
    )


def test_injected_crypto_rejection_propagates(device):
    response = AuthenticateResponse(
        client_data=make_client_data(),
        signature_data=encode_authenticate_response(0x01, 6, b"sig"),
        key_handle=KEY_HANDLE,
    )
    with pytest.raises(InvalidSignatureError):
        _started(crypto=RecordingCrypto(accept=False)).finish(response, device)


def test_finish_accepts_json_response(private_key, device):
    response = make_response(private_key, counter=6)
    assert _started().finish(response.json(), device) == 7
    assert _started().finish(response.to_dict(), device) == 7


def test_finish_does_not_consume_challenge(private_key, device):
    started = _started()
    response = make_response(private_key, counter=6)
    assert started.finish(response, device) == 7
    assert started.finish(response, device) == 7


def test_equality_ignores_origins():
    a = _started(origins=["https://example.com"])
    b = _started(origins=["https://example.com", "https://other.example"])
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1
    assert a.allowed_origins != b.allowed_origins


def test_equality_uses_identity_fields():
    base = _started()
    assert base != StartedAuthentication("V1", CHALLENGE, APP_ID, KEY_HANDLE, [APP_ID])
    assert base != StartedAuthentication("V2", "other", APP_ID, KEY_HANDLE, [APP_ID])
    assert base != StartedAuthentication("V2", CHALLENGE, "https://a.example", KEY_HANDLE, [APP_ID])
    assert base != StartedAuthentication("V2", CHALLENGE, APP_ID, "kh2", [APP_ID])


def test_wire_request_has_exactly_four_fields():
    started = _started()
    wire = started.to_wire_request()
    assert wire == {
        "version": "V2",
        "challenge": CHALLENGE,
        "appId": APP_ID,
        "keyHandle": KEY_HANDLE,
    }
    assert json.loads(started.json()) == wire
    assert "origin" not in started.json().lower()


def test_from_wire_request_round_trip():
    started = _started()
    rebuilt = StartedAuthentication.from_wire_request(
        started.to_wire_request(), ["https://example.com"]
    )
    assert rebuilt == started
    assert rebuilt.allowed_origins == frozenset(["https://example.com"])


def test_response_from_dict_requires_fields():
    with pytest.raises(ClientDataError):
        AuthenticateResponse.from_dict({"signatureData": "AQ", "keyHandle": "kh1"})
    with pytest.raises(DecodeError):
        AuthenticateResponse.from_dict(
            {"clientData": "e30", "signatureData": "A", "keyHandle": "kh1"}
        )
    with pytest.raises(ClientDataError):
        AuthenticateResponse.from_json("not json")


def test_signed_counter_ignores_counter_and_presence(private_key, device):
    response = make_response(private_key, counter=2, user_presence=0)
    assert _started().signed_counter(response, device) == 2


def test_signed_counter_rejects_forged_signature(device):
    response = AuthenticateResponse(
        client_data=make_client_data(),
        signature_data=encode_authenticate_response(0x01, 0, b"\x30\x00"),
        key_handle=KEY_HANDLE,
    )
    with pytest.raises(InvalidSignatureError):
        _started().signed_counter(response, device)
