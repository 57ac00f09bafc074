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
import logging
from dataclasses import dataclass, replace
from threading import Lock
from typing import Dict

from .exceptions import ClientDataError, ReplayError
from .messages import StartedAuthentication

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceRegistration:
    """A registered U2F credential.

    :param key_handle: Websafe-base64 key handle.
    :param public_key: Uncompressed P-256 point of the credential.
    :param counter: Last accepted signature counter, 0 after registration.
    :param compromised: Set once a replayed counter has been seen.
    """

    key_handle: str
    public_key: bytes
    counter: int = 0
    compromised: bool = False


class CredentialStore(abc.ABC):
    """Persistent view of registered credentials.

    Implementations must make :meth:`update_counter` atomic per credential,
    otherwise two ceremonies verified against the same stored counter could
    both be accepted.
    """

    @abc.abstractmethod
    def get(self, key_handle: str) -> DeviceRegistration:
        """Return the credential for a key handle, raising KeyError if unknown."""

    @abc.abstractmethod
    def update_counter(self, key_handle: str, expected: int, counter: int) -> None:
        """Replace the stored counter if it still equals ``expected``.

        :raises ReplayError: If the stored counter has changed.
        """

    @abc.abstractmethod
    def mark_compromised(self, key_handle: str) -> None:
        """Flag a credential as compromised."""


class MemoryCredentialStore(CredentialStore):
    """Thread safe in-memory credential store."""

    def __init__(self):
        self._devices: Dict[str, DeviceRegistration] = {}
        self._lock = Lock()

    def add(self, device: DeviceRegistration) -> None:
        with self._lock:
            self._devices[device.key_handle] = device

    def get(self, key_handle):
        with self._lock:
            return self._devices[key_handle]

    def update_counter(self, key_handle, expected, counter):
        with self._lock:
            device = self._devices[key_handle]
            if device.counter != expected:
                logger.warning(
                    "Counter for key handle %s changed concurrently: %d != %d",
                    key_handle,
                    device.counter,
                    expected,
                )
                raise ReplayError(
                    f"Stored counter changed from {expected} to {device.counter}"
                )
            self._devices[key_handle] = replace(device, counter=counter)

    def mark_compromised(self, key_handle):
        with self._lock:
            device = self._devices[key_handle]
            self._devices[key_handle] = replace(device, compromised=True)


class ChallengeStore(abc.ABC):
    """Outstanding challenges, keyed by challenge value."""

    @abc.abstractmethod
    def put(self, started: StartedAuthentication) -> None:
        """Register a challenge that has been sent to a client."""

    @abc.abstractmethod
    def consume(self, challenge: str) -> StartedAuthentication:
        """Atomically remove and return a challenge.

        :raises ClientDataError: If the challenge is unknown or already used.
        """


class MemoryChallengeStore(ChallengeStore):
    """Thread safe in-memory challenge store."""

    def __init__(self):
        self._started: Dict[str, StartedAuthentication] = {}
        self._lock = Lock()

    def __len__(self):
        return len(self._started)

    def put(self, started):
        with self._lock:
            if started.challenge in self._started:
                raise ValueError("Challenge already outstanding")
            self._started[started.challenge] = started

    def consume(self, challenge):
        with self._lock:
            try:
                return self._started.pop(challenge)
            except KeyError:
                raise ClientDataError("Unknown or already used challenge")
