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
from functools import wraps
from typing import Type


class U2fError(Exception):
    """Base exception for failed U2F authentication ceremonies.

    The message passed to the constructor describes the internal reason and is
    meant for logs. Clients should only ever be shown :attr:`public_message`,
    which is the same for every failure kind.
    """

    public_message = "Authentication failed"


class ClientDataError(U2fError):
    """Client data is malformed, of the wrong type, for another challenge, or
    reported from an origin that is not allowed."""


class DecodeError(U2fError):
    """The binary signature data could not be decoded."""


class UserPresenceError(U2fError):
    """The user presence flag is missing or not recognized."""


class ReplayError(U2fError):
    """The reported counter is not greater than the stored counter."""


class InvalidSignatureError(U2fError):
    """The signature of the assertion could not be verified."""


class UnsupportedKeyError(InvalidSignatureError):
    """The stored public key could not be decoded."""


def catch_builtins(error: Type[U2fError]):
    """Utility decorator to wrap common parsing exceptions in ``error``."""

    def decorator(f):
        @wraps(f)
        def inner(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except (ValueError, KeyError, IndexError, TypeError, struct.error) as e:
                raise error(e) from e

        return inner

    return decorator
