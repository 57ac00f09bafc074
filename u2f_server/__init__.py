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

from .client_data import TYPE_AUTHENTICATE, TYPE_REGISTER, ClientData, check_client_data
from .codec import RawAuthenticateResponse, USER_PRESENT_FLAG
from .crypto import Crypto, CryptographyCrypto
from .data import (
    ChallengeStore,
    CredentialStore,
    DeviceRegistration,
    MemoryChallengeStore,
    MemoryCredentialStore,
)
from .exceptions import (
    ClientDataError,
    DecodeError,
    InvalidSignatureError,
    ReplayError,
    U2fError,
    UnsupportedKeyError,
    UserPresenceError,
)
from .messages import U2F_V2, AuthenticateResponse, StartedAuthentication
from .server import U2fServer

__version__ = "0.1.0"

__all__ = [
    "AuthenticateResponse",
    "ChallengeStore",
    "ClientData",
    "ClientDataError",
    "CredentialStore",
    "Crypto",
    "CryptographyCrypto",
    "DecodeError",
    "DeviceRegistration",
    "InvalidSignatureError",
    "MemoryChallengeStore",
    "MemoryCredentialStore",
    "RawAuthenticateResponse",
    "ReplayError",
    "StartedAuthentication",
    "TYPE_AUTHENTICATE",
    "TYPE_REGISTER",
    "U2F_V2",
    "U2fError",
    "U2fServer",
    "USER_PRESENT_FLAG",
    "UnsupportedKeyError",
    "UserPresenceError",
    "check_client_data",
]
