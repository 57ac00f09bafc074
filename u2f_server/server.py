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

import logging
import os
from typing import Any, Iterable, Mapping, Optional, Union

from fido2.utils import websafe_encode

from .client_data import canonicalize_origins
from .config import DEFAULT_CHALLENGE_BYTES, MIN_CHALLENGE_BYTES, Settings
from .crypto import Crypto
from .data import ChallengeStore, CredentialStore, DeviceRegistration
from .exceptions import ClientDataError, ReplayError, U2fError
from .messages import U2F_V2, AuthenticateResponse, StartedAuthentication

logger = logging.getLogger(__name__)


class U2fServer:
    """U2F authentication for a single application ID.

    Wraps :class:`StartedAuthentication` with the bookkeeping it leaves to its
    caller: challenges are single use, and the new counter is committed with a
    compare-and-set so that concurrent ceremonies can not both succeed.

    :param app_id: The application ID.
    :param facets: Origins accepted in client data, canonicalized here.
    :param credentials: Store of registered credentials.
    :param challenges: Store of outstanding challenges.
    :param crypto: Optional crypto implementation passed to each challenge.
    :raises ValueError: If a facet is not a valid origin.
    """

    def __init__(
        self,
        app_id: str,
        facets: Iterable[str],
        credentials: CredentialStore,
        challenges: ChallengeStore,
        crypto: Optional[Crypto] = None,
        version: str = U2F_V2,
        challenge_bytes: int = DEFAULT_CHALLENGE_BYTES,
    ):
        if challenge_bytes < MIN_CHALLENGE_BYTES:
            raise ValueError(
                f"Challenge must be at least {MIN_CHALLENGE_BYTES} bytes"
            )
        self.app_id = app_id
        self.facets = canonicalize_origins(facets)
        self.version = version
        self._credentials = credentials
        self._challenges = challenges
        self._crypto = crypto
        self._challenge_bytes = challenge_bytes

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credentials: CredentialStore,
        challenges: ChallengeStore,
        crypto: Optional[Crypto] = None,
    ) -> U2fServer:
        return cls(
            settings.app_id,
            settings.facets,
            credentials,
            challenges,
            crypto=crypto,
            version=settings.version,
            challenge_bytes=settings.challenge_bytes,
        )

    def _get_device(self, key_handle: str) -> DeviceRegistration:
        try:
            device = self._credentials.get(key_handle)
        except KeyError:
            raise ClientDataError(f"Unknown key handle {key_handle}")
        if device.compromised:
            raise ReplayError(f"Device {key_handle} is marked as compromised")
        return device

    def start_authentication(
        self, key_handle: str, challenge: Optional[str] = None
    ) -> StartedAuthentication:
        """Issue a challenge for a registered credential.

        :param key_handle: Key handle of the credential to authenticate with.
        :param challenge: Optional websafe-base64 challenge, random if omitted.
        :return: The started authentication, see
            :meth:`StartedAuthentication.to_wire_request` for the client part.
        :raises ClientDataError: If the key handle is not registered.
        :raises ReplayError: If the device is marked as compromised.
        """
        self._get_device(key_handle)

        if challenge is None:
            challenge = websafe_encode(os.urandom(self._challenge_bytes))

        started = StartedAuthentication(
            self.version,
            challenge,
            self.app_id,
            key_handle,
            self.facets,
            self._crypto,
        )
        self._challenges.put(started)
        return started

    def finish_authentication(
        self, response: Union[AuthenticateResponse, Mapping[str, Any], str, bytes]
    ) -> int:
        """Verify a client response and store the new counter.

        The challenge named in the client data is consumed before anything
        else is checked, including the key handle. Any response quoting an
        outstanding challenge therefore burns it, and a failed attempt can
        not be retried against it.

        A device is marked compromised only when it has signed an assertion
        with a counter below the stored one. An unsigned stale counter, or the
        one-step lag left by storing ``counter + 1``, is rejected without
        marking it.

        :return: The new counter stored for the credential.
        :raises ClientDataError: If the challenge or key handle is unknown.
        :raises U2fError: If the response is rejected.
        """
        if isinstance(response, (str, bytes)):
            response = AuthenticateResponse.from_json(response)
        elif not isinstance(response, AuthenticateResponse):
            response = AuthenticateResponse.from_dict(response)

        started = self._challenges.consume(response.challenge)
        if started.key_handle != response.key_handle:
            raise ClientDataError("Response key handle does not match challenge")

        device = self._get_device(started.key_handle)

        try:
            counter = started.finish(response, device)
        except ReplayError:
            self._check_replay(started, response, device)
            raise
        self._credentials.update_counter(device.key_handle, device.counter, counter)
        return counter

    def _check_replay(
        self,
        started: StartedAuthentication,
        response: AuthenticateResponse,
        device: DeviceRegistration,
    ) -> None:
        try:
            signed = started.signed_counter(response, device)
        except U2fError:
            return
        if signed < device.counter:
            logger.warning("Marking key handle %s as compromised", device.key_handle)
            self._credentials.mark_compromised(device.key_handle)
