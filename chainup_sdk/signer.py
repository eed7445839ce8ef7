# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Request canonicalization and signing.

Sensitive operations (MPC withdrawals and Web3 transactions) carry a ``sign``
field the platform checks against the merchant's signing public key. The
signature is computed over a canonical string built from the request
parameters:

1. Sort the parameter keys in ascending byte order.
2. Join the pairs as ``key1=value1&key2=value2``; parameters whose value is
   empty are left out.
3. Lower-case the whole string.
4. Take the MD5 digest of its UTF-8 bytes as 32 lowercase hex characters.
5. Take the SHA-256 digest of that hex string.
6. Sign the SHA-256 digest with RSA PKCS#1 v1.5 and Base64 encode the result.

The MD5-then-SHA-256 chain and the lower-casing are fixed by the platform and
must be reproduced exactly.

Examples:
    Signing a parameter set::

        from chainup_sdk import signer
        from chainup_sdk.rsa_keys import PrivateKey

        key = PrivateKey.from_file("./sign_private.pem")
        signature = signer.sign({"coin": "ETH", "amount": "1000537"}, key)

    Producing a signed envelope, where the ciphertext and the signature share
    one canonical string::

        envelope = signer.seal(params, signing_key, platform_public_key)
        payload = {"data": envelope.ciphertext, "sign": envelope.signature}
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import unittest
import unittest.mock
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import SigningError
from .rsa_keys import PrivateKey, PublicKey


def render(value: Any) -> str:
    """String form of a parameter value as it enters the canonical string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonicalize(params: Mapping[str, Any]) -> str:
    """Build the lower-cased ``key=value&...`` string in byte-wise key order."""
    pairs = sorted(
        ((key, render(value)) for key, value in params.items()),
        key=lambda pair: pair[0].encode("utf-8"),
    )
    return "&".join(f"{key}={value}" for key, value in pairs if value != "").lower()


def digest(canonical: str) -> bytes:
    """SHA-256 over the hex MD5 digest of the canonical string."""
    md5_hex = hashlib.md5(canonical.encode("utf-8")).hexdigest()
    return hashlib.sha256(md5_hex.encode("utf-8")).digest()


def sign_canonical(canonical: str, private_key: PrivateKey) -> str:
    """Sign an already canonical string.

    :raises SigningError: If the key cannot produce a signature for the digest.
    """
    try:
        signature = private_key.sign(digest(canonical))
    except (ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign: {e}") from e
    return base64.b64encode(signature).decode("ascii")


def sign(params: Mapping[str, Any], private_key: PrivateKey) -> str:
    return sign_canonical(canonicalize(params), private_key)


def verify_canonical(canonical: str, signature: str, public_key: PublicKey) -> bool:
    try:
        raw = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SigningError(f"Failed to decode signature: {e}") from e
    return public_key.verify(digest(canonical), raw)


def verify(params: Mapping[str, Any], signature: str, public_key: PublicKey) -> bool:
    """Check a signature produced by :func:`sign`.

    :return: False if the signature does not match.
    :raises SigningError: If the signature is not valid Base64.
    """
    return verify_canonical(canonicalize(params), signature, public_key)


@dataclass(frozen=True)
class SignedEnvelope:
    """Ciphertext and signature derived from one canonical string."""

    canonical: str
    ciphertext: str
    signature: str


def seal(
    params: Mapping[str, Any], signing_key: PrivateKey, encryption_key: PublicKey
) -> SignedEnvelope:
    """Encrypt and sign a parameter set.

    The canonical string is computed once and used for both halves, so the
    envelope cannot carry a signature over different content than its
    ciphertext.
    """
    canonical = canonicalize(params)
    return SignedEnvelope(
        canonical=canonical,
        ciphertext=encryption_key.encrypt(canonical),
        signature=sign_canonical(canonical, signing_key),
    )


def withdraw_sign_params(
    request_id: str,
    sub_wallet_id: int,
    symbol: str,
    address_to: str,
    amount: str,
    memo: Optional[str] = None,
    outputs: Optional[str] = None,
) -> Dict[str, Any]:
    """The fields of an MPC withdrawal that take part in its signature."""
    params: Dict[str, Any] = {
        "request_id": request_id,
        "sub_wallet_id": sub_wallet_id,
        "symbol": symbol,
        "address_to": address_to,
        "amount": amount,
    }
    if memo is not None:
        params["memo"] = memo
    if outputs is not None:
        params["outputs"] = outputs
    return params


def web3_sign_params(
    request_id: str,
    sub_wallet_id: int,
    main_chain_symbol: str,
    interactive_contract: str,
    amount: str,
    input_data: str,
) -> Dict[str, Any]:
    """The fields of an MPC Web3 transaction that take part in its signature."""
    return {
        "request_id": request_id,
        "sub_wallet_id": sub_wallet_id,
        "main_chain_symbol": main_chain_symbol,
        "interactive_contract": interactive_contract,
        "amount": amount,
        "input_data": input_data,
    }


class Test(unittest.TestCase):
    def setUp(self):
        from . import fixtures
        self.fixtures = fixtures
        self.private_key = PrivateKey.from_str(self.fixtures.TEST_PRIVATE_KEY)
        self.public_key = PublicKey.from_str(self.fixtures.TEST_PUBLIC_KEY)

    def test_reference_vector(self):
        canonical = canonicalize(self.fixtures.REFERENCE_PARAMS)
        self.assertEqual(canonical, self.fixtures.REFERENCE_CANONICAL)
        self.assertEqual(
            hashlib.md5(canonical.encode()).hexdigest(), self.fixtures.REFERENCE_MD5_HEX
        )
        self.assertEqual(digest(canonical).hex(), self.fixtures.REFERENCE_SHA256_HEX)
        self.assertEqual(
            sign(self.fixtures.REFERENCE_PARAMS, self.private_key),
            self.fixtures.REFERENCE_SIGNATURE,
        )
        self.assertTrue(
            verify(self.fixtures.REFERENCE_PARAMS, self.fixtures.REFERENCE_SIGNATURE, self.public_key)
        )

    def test_canonicalize(self):
        params = {"b": "2", "a": "1", "B": "Up", "empty": "", "none": None, "flag": True}
        self.assertEqual(canonicalize(params), "b=up&a=1&b=2&flag=true")
        self.assertEqual(canonicalize(params), canonicalize(params))
        self.assertEqual(canonicalize({}), "")
        self.assertEqual(canonicalize({"sub_wallet_id": 123}), "sub_wallet_id=123")

    def test_order_independence(self):
        forward = {"symbol": "ETH", "amount": "0.1", "request_id": "r-1"}
        backward = dict(reversed(list(forward.items())))
        self.assertEqual(canonicalize(forward), canonicalize(backward))
        self.assertEqual(sign(forward, self.private_key), sign(backward, self.private_key))

    def test_deterministic_and_sensitive(self):
        params = dict(self.fixtures.REFERENCE_PARAMS)
        first = sign(params, self.private_key)
        self.assertEqual(first, sign(params, self.private_key))
        for key in params:
            changed = dict(params)
            changed[key] = changed[key] + "1"
            self.assertNotEqual(sign(changed, self.private_key), first)
            self.assertFalse(verify(changed, first, self.public_key))

    def test_verify_failures(self):
        other = PublicKey.from_str(self.fixtures.OTHER_PUBLIC_KEY)
        self.assertFalse(
            verify(self.fixtures.REFERENCE_PARAMS, self.fixtures.REFERENCE_SIGNATURE, other)
        )
        with self.assertRaises(SigningError):
            verify(self.fixtures.REFERENCE_PARAMS, "!!not base64!!", self.public_key)

    def test_signing_error(self):
        with unittest.mock.patch.object(
            PrivateKey, "sign", side_effect=ValueError("Digest too big for key size")
        ):
            with self.assertRaises(SigningError):
                sign(self.fixtures.REFERENCE_PARAMS, self.private_key)

    def test_seal(self):
        envelope = seal(self.fixtures.REFERENCE_PARAMS, self.private_key, self.public_key)
        self.assertEqual(envelope.canonical, self.fixtures.REFERENCE_CANONICAL)
        self.assertEqual(envelope.signature, self.fixtures.REFERENCE_SIGNATURE)
        self.assertEqual(
            self.private_key.decrypt(envelope.ciphertext), envelope.canonical
        )
        self.assertTrue(
            verify_canonical(
                self.private_key.decrypt(envelope.ciphertext),
                envelope.signature,
                self.public_key,
            )
        )

    def test_withdraw_sign_params(self):
        params = withdraw_sign_params("r-1", 1001, "ETH", "0xABC", "0.5", memo="")
        self.assertEqual(
            canonicalize(params),
            "address_to=0xabc&amount=0.5&request_id=r-1&sub_wallet_id=1001&symbol=eth",
        )
        self.assertNotIn("outputs", params)

    def test_web3_sign_params(self):
        params = web3_sign_params("r-2", 7, "ETH", "0xC0", "0", "0xa9059cbb")
        self.assertEqual(
            canonicalize(params),
            "amount=0&input_data=0xa9059cbb&interactive_contract=0xc0"
            "&main_chain_symbol=eth&request_id=r-2&sub_wallet_id=7",
        )
