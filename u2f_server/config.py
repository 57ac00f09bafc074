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

"""Environment based configuration for a U2F authentication server."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional

from .client_data import canonicalize_origin, canonicalize_origins
from .messages import U2F_V2

MIN_CHALLENGE_BYTES = 16
DEFAULT_CHALLENGE_BYTES = 32


@dataclass(frozen=True)
class Settings:
    app_id: str
    facets: FrozenSet[str]
    version: str = U2F_V2
    challenge_bytes: int = DEFAULT_CHALLENGE_BYTES


def _parse_facets(raw_value: Optional[str]) -> Optional[FrozenSet[str]]:
    """Normalise a comma or newline separated list of origins."""

    if raw_value is None:
        return None

    components = re.split(r"[,;\n]+", raw_value)
    facets = [component.strip() for component in components if component.strip()]
    if not facets:
        return None
    return canonicalize_origins(facets)


def _parse_int(name: str, raw_value: Optional[str], default: int) -> int:
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return int(raw_value.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw_value!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read server settings from ``U2F_SERVER_*`` environment variables.

    ``U2F_SERVER_APP_ID`` is required. When ``U2F_SERVER_FACETS`` is not set
    the origin of the app ID is the only allowed facet.
    """

    if environ is None:
        environ = os.environ

    app_id = (environ.get("U2F_SERVER_APP_ID") or "").strip()
    if not app_id:
        raise ValueError("U2F_SERVER_APP_ID must be set")

    facets = _parse_facets(environ.get("U2F_SERVER_FACETS"))
    if facets is None:
        facets = frozenset([canonicalize_origin(app_id)])

    version = (environ.get("U2F_SERVER_VERSION") or "").strip() or U2F_V2

    challenge_bytes = _parse_int(
        "U2F_SERVER_CHALLENGE_BYTES",
        environ.get("U2F_SERVER_CHALLENGE_BYTES"),
        DEFAULT_CHALLENGE_BYTES,
    )
    if challenge_bytes < MIN_CHALLENGE_BYTES:
        raise ValueError(
            f"U2F_SERVER_CHALLENGE_BYTES must be at least {MIN_CHALLENGE_BYTES}"
        )

    return Settings(
        app_id=app_id,
        facets=facets,
        version=version,
        challenge_bytes=challenge_bytes,
    )
