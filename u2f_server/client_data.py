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
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlsplit

from .exceptions import ClientDataError, catch_builtins

TYPE_AUTHENTICATE = "navigator.id.getAssertion"
TYPE_REGISTER = "navigator.id.finishEnrollment"

_DEFAULT_PORTS = {"http": 80, "https": 443}


def canonicalize_origin(url: str) -> str:
    """Reduce a URL to its ``scheme://host[:port]`` origin.

    Scheme and host are lower-cased and default ports are dropped, so that
    ``HTTPS://Example.com:443/login`` becomes ``https://example.com``.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        raise ValueError(f"Not a valid origin: {url!r}")
    port = parts.port
    if ":" in host:
        host = f"[{host}]"
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def canonicalize_origins(urls: Iterable[str]) -> FrozenSet[str]:
    return frozenset(canonicalize_origin(url) for url in urls)


@dataclass(frozen=True)
class ClientData:
    """Client data collected by the browser, as signed by the authenticator."""

    typ: str
    challenge: str
    origin: str
    cid_pubkey: Optional[object] = None

    @classmethod
    @catch_builtins(ClientDataError)
    def parse(cls, raw: bytes) -> ClientData:
        data = json.loads(bytes(raw).decode("utf-8"))
        if not isinstance(data, dict):
            raise ClientDataError("Client data must be a JSON object")
        for key in ("typ", "challenge", "origin"):
            if not isinstance(data.get(key), str):
                raise ClientDataError(f"Client data is missing {key!r}")
        return cls(
            typ=data["typ"],
            challenge=data["challenge"],
            origin=data["origin"],
            cid_pubkey=data.get("cid_pubkey"),
        )


@catch_builtins(ClientDataError)
def check_client_data(
    raw: bytes,
    expected_type: str,
    expected_challenge: str,
    allowed_origins: Iterable[str],
) -> bytes:
    """Validate client data and return the exact bytes that were checked.

    The returned bytes are the input unchanged; callers hash these rather
    than a re-encoded copy since the signature covers the original bytes.

    :param raw: The decoded ``clientData`` bytes.
    :param expected_type: :data:`TYPE_AUTHENTICATE` or :data:`TYPE_REGISTER`.
    :param expected_challenge: The challenge issued to the client.
    :param allowed_origins: Canonicalized origins accepted for this ceremony.
    :raises ClientDataError: If any check fails.
    """
    raw = bytes(raw)
    client_data = ClientData.parse(raw)

    if client_data.typ != expected_type:
        raise ClientDataError(f"Bad client data type: {client_data.typ!r}")
    if client_data.challenge != expected_challenge:
        raise ClientDataError("Wrong challenge signed in client data")
    origin = canonicalize_origin(client_data.origin)
    if origin not in allowed_origins:
        raise ClientDataError(f"Origin not allowed: {origin}")
    return raw
