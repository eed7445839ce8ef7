# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Exception hierarchy for the custody SDK.

Every error the SDK raises derives from :class:`ChainUpError`, so callers that
do not care about the cause can catch a single type. The subclasses separate the
moment a failure is detected:

- ConfigError: key material or identifiers rejected while building a config
- CryptoError / SigningError: an RSA primitive failed for one call
- ValidationError: call arguments rejected before any network traffic
- RemoteError: the service answered with a non-zero ``code``
- TransportError: the request never produced a usable response

Nothing in the SDK retries; whether a failed read is retried is the caller's
decision.
"""

from __future__ import annotations

import unittest
from typing import Any, Optional

from .enums import ApiCode


class ChainUpError(Exception):
    """Base class for every error raised by the SDK."""


class ConfigError(ChainUpError):
    """A client configuration is missing a value or holds unusable keys."""


class CryptoError(ChainUpError):
    """Encryption, decryption or key parsing failed."""


class SigningError(CryptoError):
    """A signature could not be produced or decoded."""


class ValidationError(ChainUpError):
    """Request arguments were rejected locally."""


class RemoteError(ChainUpError):
    """The service returned a non-success ``code``."""

    code: int
    message: str
    data: Any

    def __init__(self, code: int, message: str, data: Any = None):
        # Call the base class constructor with the parameters it needs
        super().__init__(f"API error [{code}]: {message}")
        self.code = code
        self.message = message
        self.data = data

    @property
    def api_code(self) -> Optional[ApiCode]:
        return ApiCode.from_code(self.code)


class TransportError(ChainUpError):
    """The HTTP exchange failed or returned a body that could not be read."""

    status_code: Optional[int]

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class Test(unittest.TestCase):
    def test_remote_error(self):
        error = RemoteError(120402, "insufficient balance", {"symbol": "ETH"})
        self.assertEqual(str(error), "API error [120402]: insufficient balance")
        self.assertIs(error.api_code, ApiCode.BALANCE_INSUFFICIENT)
        self.assertEqual(error.data, {"symbol": "ETH"})
        self.assertIsNone(RemoteError(-1, "Unknown error").api_code)

    def test_hierarchy(self):
        self.assertTrue(issubclass(SigningError, CryptoError))
        for cls in (ConfigError, CryptoError, ValidationError, RemoteError):
            self.assertTrue(issubclass(cls, ChainUpError))
        self.assertEqual(TransportError("timed out").status_code, None)
        self.assertEqual(TransportError("bad gateway", 502).status_code, 502)
