# Copyright (c) 2026 The u2f-server authors
# All rights reserved.
#
#   Redistribution and use in source and binary forms, with or
#   without modification, are permitted provided that the following
#   conditions are met:
#
#    1. Redistributions of source code must retain the above copyright
#       notice, this list of conditions and the following disclaimer.
#    2. Redistributions in binary form must reproduce the above
#       copyright notice, this list of conditions and the following
#       disclaimer in the documentation and/or other materials provided
#       with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS
# "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT
# LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE
# COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT,
# INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING,
# BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES;
# LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
# LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN
# ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

from __future__ import annotations

import struct
from dataclasses import dataclass

from .exceptions import DecodeError, catch_builtins

#: Bit set by the authenticator when the user touched it during signing.
USER_PRESENT_FLAG = 0x01

_PREFIX = struct.Struct(">BI")
_MAX_COUNTER = 0xFFFFFFFF


@dataclass(frozen=True)
class RawAuthenticateResponse:
    """The binary ``signatureData`` returned by a U2F authenticator."""

    user_presence: int
    counter: int
    signature: bytes


@catch_builtins(DecodeError)
def decode_authenticate_response(data: bytes) -> RawAuthenticateResponse:
    """Decode signature data: flag byte, big endian counter, then signature.

    The signature has no length prefix and consumes all remaining bytes.
    """
    data = bytes(data)
    if len(data) < _PREFIX.size:
        raise DecodeError(
            f"Signature data too short: {len(data)} < {_PREFIX.size} bytes"
        )
    user_presence, counter = _PREFIX.unpack_from(data)
    signature = data[_PREFIX.size :]
    if not signature:
        raise DecodeError("Signature data is missing the signature")
    return RawAuthenticateResponse(user_presence, counter, signature)


def encode_authenticate_response(
    user_presence: int, counter: int, signature: bytes
) -> bytes:
    """Encode signature data as an authenticator would produce it."""
    return _PREFIX.pack(user_presence, counter) + bytes(signature)


def encode_authenticate_signed_bytes(
    app_id_hash: bytes, user_presence: int, counter: int, client_data_hash: bytes
) -> bytes:
    """Build the exact byte string signed by the authenticator."""
    if len(app_id_hash) != 32 or len(client_data_hash) != 32:
        raise ValueError("Application and client data hashes must be 32 bytes")
    if not 0 <= counter <= _MAX_COUNTER:
        raise ValueError(f"Counter out of range: {counter}")
    return (
        bytes(app_id_hash)
        + _PREFIX.pack(user_presence, counter)
        + bytes(client_data_hash)
    )
