# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Pluggable cryptography for the custody clients.

The clients never touch key material directly. Every RSA operation goes through
a :class:`CryptoProvider`, so merchants that keep their keys in an HSM or a
cloud KMS can supply their own implementation instead of PEM strings.

Examples:
    Default provider from key text::

        from chainup_sdk.crypto_provider import RsaCryptoProvider

        provider = RsaCryptoProvider.from_strings(
            private_key=os.environ["CHAINUP_PRIVATE_KEY"],
            public_key=os.environ["CHAINUP_PUBLIC_KEY"],
        )
        wire = provider.encrypt_with_private_key('{"uid":"1"}')

    A custom provider only needs the four methods of the protocol::

        class KmsCryptoProvider:
            def encrypt_with_private_key(self, data: str) -> str: ...
            def decrypt_with_public_key(self, data: str) -> str: ...
            def sign(self, data: str) -> str: ...
            def verify(self, data: str, signature: str) -> bool: ...

        config = WaasConfig(app_id="app", crypto_provider=KmsCryptoProvider())
"""

from __future__ import annotations

import unittest
from typing import Optional

from typing_extensions import Protocol

from . import signer
from .errors import CryptoError
from .rsa_keys import PrivateKey, PublicKey


class CryptoProvider(Protocol):
    """The RSA operations a client performs against the custody service."""

    def encrypt_with_private_key(self, data: str) -> str:
        """
        Encode an outbound payload with the merchant private key.

        :param data: JSON text of the request arguments.
        :return: URL-safe Base64 ciphertext.
        """
        ...

    def decrypt_with_public_key(self, data: str) -> str:
        """
        Decode an inbound payload with the platform public key.

        :param data: URL-safe Base64 ciphertext from a response or notification.
        :return: The plaintext JSON.
        """
        ...

    def sign(self, data: str) -> str:
        """
        Sign a canonical parameter string.

        :param data: Output of :func:`chainup_sdk.signer.canonicalize`.
        :return: Base64 signature.
        """
        ...

    def verify(self, data: str, signature: str) -> bool:
        """Check a signature made by the platform over a canonical parameter string."""
        ...


class RsaCryptoProvider:
    """CryptoProvider backed by in-process RSA keys."""

    private_key: Optional[PrivateKey]
    public_key: Optional[PublicKey]
    sign_private_key: Optional[PrivateKey]

    def __init__(
        self,
        private_key: Optional[PrivateKey],
        public_key: Optional[PublicKey],
        sign_private_key: Optional[PrivateKey] = None,
    ):
        self.private_key = private_key
        self.public_key = public_key
        self.sign_private_key = sign_private_key

    def __repr__(self) -> str:
        return (
            f"RsaCryptoProvider(private_key={self.private_key is not None}, "
            f"public_key={self.public_key is not None}, "
            f"sign_private_key={self.sign_private_key is not None})"
        )

    @staticmethod
    def from_strings(
        private_key: Optional[str],
        public_key: Optional[str],
        sign_private_key: Optional[str] = None,
    ) -> RsaCryptoProvider:
        """Parse key text; empty values leave the corresponding key unset."""
        return RsaCryptoProvider(
            PrivateKey.from_str(private_key) if private_key else None,
            PublicKey.from_str(public_key) if public_key else None,
            PrivateKey.from_str(sign_private_key) if sign_private_key else None,
        )

    def _private(self) -> PrivateKey:
        if self.private_key is None:
            raise CryptoError("Private key is not configured")
        return self.private_key

    def _public(self) -> PublicKey:
        if self.public_key is None:
            raise CryptoError("Public key is not configured")
        return self.public_key

    def _signing(self) -> PrivateKey:
        if self.sign_private_key is not None:
            return self.sign_private_key
        return self._private()

    def encrypt_with_private_key(self, data: str) -> str:
        return self._private().encrypt_private(data)

    def decrypt_with_public_key(self, data: str) -> str:
        return self._public().decrypt_public(data)

    def sign(self, data: str) -> str:
        return signer.sign_canonical(data, self._signing())

    def verify(self, data: str, signature: str) -> bool:
        """Check a platform signature with the platform public key."""
        return signer.verify_canonical(data, signature, self._public())


class Test(unittest.TestCase):
    def setUp(self):
        from . import fixtures
        self.fixtures = fixtures

    def test_round_trip(self):
        provider = RsaCryptoProvider.from_strings(
            self.fixtures.TEST_PRIVATE_KEY, self.fixtures.TEST_PUBLIC_KEY
        )
        wire = provider.encrypt_with_private_key('{"uid":"1"}')
        self.assertEqual(provider.decrypt_with_public_key(wire), '{"uid":"1"}')

    def test_sign_key_selection(self):
        provider = RsaCryptoProvider.from_strings(
            self.fixtures.TEST_PRIVATE_KEY, self.fixtures.OTHER_PUBLIC_KEY
        )
        signature = provider.sign(self.fixtures.REFERENCE_CANONICAL)
        self.assertEqual(signature, self.fixtures.REFERENCE_SIGNATURE)

        dedicated = RsaCryptoProvider.from_strings(
            self.fixtures.TEST_PRIVATE_KEY,
            self.fixtures.OTHER_PUBLIC_KEY,
            self.fixtures.OTHER_PRIVATE_KEY,
        )
        self.assertNotEqual(dedicated.sign(self.fixtures.REFERENCE_CANONICAL), signature)

    def test_verify_uses_platform_key(self):
        provider = RsaCryptoProvider.from_strings(
            self.fixtures.TEST_PRIVATE_KEY, self.fixtures.OTHER_PUBLIC_KEY
        )
        platform_signature = signer.sign_canonical(
            self.fixtures.REFERENCE_CANONICAL,
            PrivateKey.from_str(self.fixtures.OTHER_PRIVATE_KEY),
        )
        self.assertTrue(
            provider.verify(self.fixtures.REFERENCE_CANONICAL, platform_signature)
        )
        self.assertFalse(
            provider.verify(
                self.fixtures.REFERENCE_CANONICAL,
                provider.sign(self.fixtures.REFERENCE_CANONICAL),
            )
        )
        with self.assertRaises(CryptoError):
            RsaCryptoProvider.from_strings(self.fixtures.TEST_PRIVATE_KEY, "").verify(
                self.fixtures.REFERENCE_CANONICAL, platform_signature
            )

    def test_missing_keys(self):
        provider = RsaCryptoProvider.from_strings("", self.fixtures.TEST_PUBLIC_KEY)
        with self.assertRaises(CryptoError):
            provider.encrypt_with_private_key("{}")
        with self.assertRaises(CryptoError):
            provider.sign("a=1")
        with self.assertRaises(CryptoError):
            RsaCryptoProvider(None, None).decrypt_with_public_key("abc")

    def test_repr_hides_keys(self):
        provider = RsaCryptoProvider.from_strings(
            self.fixtures.TEST_PRIVATE_KEY, self.fixtures.TEST_PUBLIC_KEY
        )
        self.assertNotIn("BEGIN", repr(provider))
