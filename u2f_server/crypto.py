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

import abc
from typing import Any, Union

from cryptography.exceptions import InvalidSignature as _InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .exceptions import InvalidSignatureError, UnsupportedKeyError


class Crypto(abc.ABC):
    """Cryptographic operations needed to verify a U2F assertion.

    Implementations are injected into :class:`~u2f_server.messages.StartedAuthentication`
    so the verification logic does not depend on a concrete backend.
    """

    @abc.abstractmethod
    def hash(self, data: Union[bytes, str]) -> bytes:
        """Return the SHA-256 digest of ``data``, UTF-8 encoding strings."""

    @abc.abstractmethod
    def decode_public_key(self, data: bytes) -> Any:
        """Decode a stored public key.

        :raises UnsupportedKeyError: If the key can not be decoded.
        """

    @abc.abstractmethod
    def verify(self, public_key: Any, message: bytes, signature: bytes) -> None:
        """Validates a digital signature over a given message.

        :param public_key: A key returned by :meth:`decode_public_key`.
        :param message: The message which was signed.
        :param signature: The signature to check.
        :raises InvalidSignatureError: If the signature is not valid.
        """


class CryptographyCrypto(Crypto):
    """ECDSA P-256 with SHA-256, backed by pyca/cryptography."""

    CURVE = ec.SECP256R1()
    _HASH_ALG = hashes.SHA256()

    def hash(self, data):
        if isinstance(data, str):
            data = data.encode("utf-8")
        h = hashes.Hash(self._HASH_ALG)
        h.update(bytes(data))
        return h.finalize()

    def decode_public_key(self, data):
        data = bytes(data)
        try:
            if data[:1] == b"\x30":  # DER SubjectPublicKeyInfo
                public_key = serialization.load_der_public_key(data)
            else:
                public_key = ec.EllipticCurvePublicKey.from_encoded_point(
                    self.CURVE, data
                )
        except (ValueError, UnsupportedAlgorithm) as e:
            raise UnsupportedKeyError(f"Unable to decode public key: {e}") from e

        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise UnsupportedKeyError("Public key is not an EC key")
        if public_key.curve.name != self.CURVE.name:
            raise UnsupportedKeyError(f"Unsupported elliptic curve: {public_key.curve.name}")
        return public_key

    def verify(self, public_key, message, signature):
        try:
            public_key.verify(bytes(signature), bytes(message), ec.ECDSA(self._HASH_ALG))
        except _InvalidSignature as e:
            raise InvalidSignatureError("Invalid signature") from e
        except ValueError as e:
            # Malformed DER encoding of the signature
            raise InvalidSignatureError(f"Malformed signature: {e}") from e
