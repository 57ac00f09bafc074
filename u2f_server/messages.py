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

import json
import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Union

from fido2.utils import websafe_decode, websafe_encode

from .client_data import TYPE_AUTHENTICATE, ClientData, canonicalize_origins, check_client_data
from .codec import (
    USER_PRESENT_FLAG,
    decode_authenticate_response,
    encode_authenticate_signed_bytes,
)
from .crypto import Crypto, CryptographyCrypto
from .exceptions import (
    ClientDataError,
    DecodeError,
    ReplayError,
    U2fError,
    UserPresenceError,
)

logger = logging.getLogger(__name__)

U2F_V2 = "U2F_V2"


def _decode_field(data: Mapping[str, Any], key: str, error) -> bytes:
    value = data.get(key)
    if not isinstance(value, str):
        raise error(f"Response is missing {key!r}")
    try:
        return websafe_decode(value)
    except ValueError as e:
        raise error(f"Invalid base64 in {key!r}: {e}") from e


@dataclass(frozen=True)
class AuthenticateResponse:
    """The response of a U2F sign request, as sent back by the client.

    :param client_data: The decoded client data bytes, exactly as signed.
    :param signature_data: The decoded binary signature data.
    :param key_handle: The websafe-base64 key handle of the credential used.
    """

    client_data: bytes
    signature_data: bytes
    key_handle: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthenticateResponse:
        if not isinstance(data, Mapping):
            raise ClientDataError("Response must be a JSON object")
        key_handle = data.get("keyHandle")
        if not isinstance(key_handle, str):
            raise ClientDataError("Response is missing 'keyHandle'")
        return cls(
            client_data=_decode_field(data, "clientData", ClientDataError),
            signature_data=_decode_field(data, "signatureData", DecodeError),
            key_handle=key_handle,
        )

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> AuthenticateResponse:
        try:
            parsed = json.loads(data)
        except ValueError as e:
            raise ClientDataError(f"Response is not valid JSON: {e}") from e
        return cls.from_dict(parsed)

    def to_dict(self) -> dict:
        return {
            "clientData": websafe_encode(self.client_data),
            "signatureData": websafe_encode(self.signature_data),
            "keyHandle": self.key_handle,
        }

    def json(self) -> str:
        return json.dumps(self.to_dict())

    @property
    def challenge(self) -> str:
        """The challenge reported in the client data."""
        return ClientData.parse(self.client_data).challenge


class StartedAuthentication:
    """An outstanding U2F authentication challenge.

    Holds the challenge sent to the client together with the origins the
    response may come from, and verifies the response in :meth:`finish`.
    Instances are immutable, and two instances are equal when their version,
    challenge, app ID and key handle are equal. The allowed origins are
    server policy and take no part in equality.

    ``finish`` does not consume the challenge. Enforcing single use is up to
    the caller, see :class:`~u2f_server.data.ChallengeStore`.

    :param version: Protocol version the authenticator must speak.
    :param challenge: The websafe-base64 encoded challenge.
    :param app_id: The application ID the credential is bound to.
    :param key_handle: Websafe-base64 key handle of the targeted credential.
    :param origins: Origins the client data may report. Canonicalized once.
    :param crypto: Crypto implementation, defaults to :class:`CryptographyCrypto`.
    """

    def __init__(
        self,
        version: str,
        challenge: str,
        app_id: str,
        key_handle: str,
        origins: Iterable[str],
        crypto: Optional[Crypto] = None,
    ):
        self._version = version
        self._challenge = challenge
        self._app_id = app_id
        self._key_handle = key_handle
        self._allowed_origins = canonicalize_origins(origins)
        self._crypto = crypto or CryptographyCrypto()

    @classmethod
    def from_wire_request(
        cls,
        data: Mapping[str, str],
        origins: Iterable[str],
        crypto: Optional[Crypto] = None,
    ) -> StartedAuthentication:
        """Rebuild a challenge from the output of :meth:`to_wire_request`."""
        return cls(
            data["version"],
            data["challenge"],
            data["appId"],
            data["keyHandle"],
            origins,
            crypto,
        )

    @property
    def version(self) -> str:
        return self._version

    @property
    def challenge(self) -> str:
        return self._challenge

    @property
    def app_id(self) -> str:
        return self._app_id

    @property
    def key_handle(self) -> str:
        return self._key_handle

    @property
    def allowed_origins(self) -> FrozenSet[str]:
        return self._allowed_origins

    def _identity(self):
        return (self._version, self._challenge, self._app_id, self._key_handle)

    def __eq__(self, other):
        if not isinstance(other, StartedAuthentication):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self):
        return hash(self._identity())

    def __repr__(self):
        return (
            f"{type(self).__name__}(version={self._version!r}, "
            f"challenge={self._challenge!r}, app_id={self._app_id!r}, "
            f"key_handle={self._key_handle!r})"
        )

    def to_wire_request(self) -> dict:
        """The sign request to send to the client."""
        return {
            "version": self._version,
            "challenge": self._challenge,
            "appId": self._app_id,
            "keyHandle": self._key_handle,
        }

    def json(self) -> str:
        return json.dumps(self.to_wire_request())

    def finish(
        self,
        response: Union[AuthenticateResponse, Mapping[str, Any], str, bytes],
        device: Any,
    ) -> int:
        """Verify a response to this challenge.

        Checks are made in a fixed order, cheapest first: client data, user
        presence, counter and finally the signature.

        :param response: The client response, parsed or in its JSON form.
        :param device: The registered credential, providing ``public_key``
            and ``counter``. It is not modified.
        :return: The counter value to store for the device.
        :raises U2fError: A subclass describing why verification failed.
        """
        try:
            counter = self._verify(response, device)
        except U2fError as e:
            logger.warning(
                "Authentication for key handle %s rejected (%s): %s",
                self._key_handle,
                type(e).__name__,
                e,
            )
            raise
        logger.debug(
            "Authentication for key handle %s verified, counter %d",
            self._key_handle,
            counter,
        )
        return counter + 1

    def signed_counter(
        self,
        response: Union[AuthenticateResponse, Mapping[str, Any], str, bytes],
        device: Any,
    ) -> int:
        """Return the counter of a response once its signature is verified.

        Unlike :meth:`finish` neither user presence nor the counter is checked,
        so this tells a replayed assertion signed by the device apart from
        forged signature data.

        :raises U2fError: If the client data or the signature is invalid.
        """
        client_data, raw = self._parse(response)
        self._check_signature(client_data, raw, device)
        return raw.counter

    def _parse(self, response):
        if isinstance(response, (str, bytes)):
            response = AuthenticateResponse.from_json(response)
        elif not isinstance(response, AuthenticateResponse):
            response = AuthenticateResponse.from_dict(response)

        client_data = check_client_data(
            response.client_data,
            TYPE_AUTHENTICATE,
            self._challenge,
            self._allowed_origins,
        )
        return client_data, decode_authenticate_response(response.signature_data)

    def _check_signature(self, client_data, raw, device) -> None:
        signed_bytes = encode_authenticate_signed_bytes(
            self._crypto.hash(self._app_id),
            raw.user_presence,
            raw.counter,
            self._crypto.hash(client_data),
        )
        self._crypto.verify(
            self._crypto.decode_public_key(device.public_key),
            signed_bytes,
            raw.signature,
        )

    def _verify(self, response, device) -> int:
        client_data, raw = self._parse(response)

        if raw.user_presence != USER_PRESENT_FLAG:
            raise UserPresenceError(
                f"User presence invalid during authentication: {raw.user_presence:#04x}"
            )

        if raw.counter <= device.counter:
            raise ReplayError(
                f"Counter value {raw.counter} not greater than stored {device.counter}"
            )

        self._check_signature(client_data, raw, device)
        return raw.counter
