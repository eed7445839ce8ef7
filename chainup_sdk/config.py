# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client configuration for the WaaS and MPC APIs.

Both configs are frozen dataclasses that validate themselves on construction:
an empty app id, a missing key or key text that does not parse raises
:class:`~chainup_sdk.errors.ConfigError` immediately instead of failing on the
first request. The parsed keys are kept on the instance, so one config can be
shared by any number of clients and tasks.

Configs can be built three ways:

- directly, passing key text (PEM or bare Base64);
- from environment variables with :meth:`WaasConfig.from_env`;
- from a JSON file written by :meth:`WaasConfig.store`.

Examples:
    Direct construction::

        from chainup_sdk.config import WaasConfig

        config = WaasConfig(
            app_id="your-app-id",
            private_key=open("merchant_private.pem").read(),
            public_key=open("platform_public.pem").read(),
        )
        config.url("/user/info")
        # 'https://openapi.chainup.com/v2/user/info'

    From the environment::

        # CHAINUP_APP_ID, CHAINUP_PRIVATE_KEY, CHAINUP_PUBLIC_KEY,
        # CHAINUP_SIGN_PRIVATE_KEY, CHAINUP_HOST, CHAINUP_DEBUG
        config = MpcConfig.from_env()

    Persisting a config::

        config.store("./chainup.json")
        same = WaasConfig.load("./chainup.json")

Note:
    ``store`` writes private keys in plaintext. Restrict the file permissions.
"""

from __future__ import annotations

import dataclasses
import json
import os
import tempfile
import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .crypto_provider import CryptoProvider, RsaCryptoProvider
from .errors import ConfigError, CryptoError

DEFAULT_HOST = "https://openapi.chainup.com/"
DEFAULT_VERSION = "v2"
DEFAULT_CHARSET = "UTF-8"
DEFAULT_TIMEOUT = 30.0
ENV_PREFIX = "CHAINUP_"

TRUE_VALUES = ("1", "true", "yes", "on")


def _join(base: str, *parts: str) -> str:
    segments = [base.rstrip("/")]
    segments.extend(part.strip("/") for part in parts if part.strip("/"))
    return "/".join(segments)


def _build_provider(
    crypto_provider: Optional[CryptoProvider],
    private_key: str,
    public_key: str,
    sign_private_key: str = "",
) -> CryptoProvider:
    if crypto_provider is not None:
        return crypto_provider
    if not private_key:
        raise ConfigError("private_key is required")
    if not public_key:
        raise ConfigError("public_key is required")
    try:
        return RsaCryptoProvider.from_strings(private_key, public_key, sign_private_key)
    except CryptoError as e:
        raise ConfigError(f"Invalid key material: {e}") from e


def _check_common(app_id: str, base: str, timeout: float):
    if not app_id or not app_id.strip():
        raise ConfigError("app_id is required")
    if not base or not base.strip():
        raise ConfigError("host is required")
    if timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {timeout}")


def _env(environ: Mapping[str, str], prefix: str, name: str, default: str = "") -> str:
    return environ.get(f"{prefix}{name}", default)


def _to_json(config: Any) -> Dict[str, Any]:
    return {
        f.name: getattr(config, f.name)
        for f in dataclasses.fields(config)
        if f.init and f.name != "crypto_provider"
    }


def _from_json(cls: Any, path: str) -> Dict[str, Any]:
    with open(path) as file:
        data = json.load(file)
    if not isinstance(data, dict):
        raise ConfigError(f"{path} does not hold a JSON object")
    known = {f.name for f in dataclasses.fields(cls) if f.init}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown config fields in {path}: {sorted(unknown)}")
    return data


@dataclass(frozen=True)
class WaasConfig:
    """Settings for :class:`~chainup_sdk.waas.WaasClient`.

    :param app_id: Merchant application id issued by the console.
    :param private_key: Merchant RSA private key text.
    :param public_key: Platform RSA public key text.
    :param host: API host; requests go to ``{host}/{version}/{path}``.
    :param crypto_provider: Replaces the key pair when given.
    """

    app_id: str
    private_key: str = field(default="", repr=False)
    public_key: str = field(default="", repr=False)
    host: str = DEFAULT_HOST
    version: str = DEFAULT_VERSION
    charset: str = DEFAULT_CHARSET
    debug: bool = False
    timeout: float = DEFAULT_TIMEOUT
    crypto_provider: Optional[CryptoProvider] = field(
        default=None, compare=False, repr=False
    )
    _provider: CryptoProvider = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        _check_common(self.app_id, self.host, self.timeout)
        object.__setattr__(
            self,
            "_provider",
            _build_provider(self.crypto_provider, self.private_key, self.public_key),
        )

    @property
    def provider(self) -> CryptoProvider:
        return self._provider

    def url(self, path: str) -> str:
        return _join(self.host, self.version, path)

    @staticmethod
    def from_env(
        prefix: str = ENV_PREFIX, environ: Optional[Mapping[str, str]] = None
    ) -> WaasConfig:
        environ = os.environ if environ is None else environ
        return WaasConfig(
            app_id=_env(environ, prefix, "APP_ID"),
            private_key=_env(environ, prefix, "PRIVATE_KEY"),
            public_key=_env(environ, prefix, "PUBLIC_KEY"),
            host=_env(environ, prefix, "HOST", DEFAULT_HOST),
            version=_env(environ, prefix, "VERSION", DEFAULT_VERSION),
            debug=_env(environ, prefix, "DEBUG").lower() in TRUE_VALUES,
        )

    @staticmethod
    def load(path: str) -> WaasConfig:
        return WaasConfig(**_from_json(WaasConfig, path))

    def store(self, path: str):
        with open(path, "w") as file:
            json.dump(_to_json(self), file, indent=2)


@dataclass(frozen=True)
class MpcConfig:
    """Settings for :class:`~chainup_sdk.mpc.MpcClient`.

    ``sign_private_key`` is the key whose public half was registered for
    transaction signing. Without it, signed operations fall back to
    ``private_key``.
    """

    app_id: str
    private_key: str = field(default="", repr=False)
    public_key: str = field(default="", repr=False)
    sign_private_key: str = field(default="", repr=False)
    domain: str = DEFAULT_HOST
    charset: str = "utf-8"
    debug: bool = False
    timeout: float = DEFAULT_TIMEOUT
    crypto_provider: Optional[CryptoProvider] = field(
        default=None, compare=False, repr=False
    )
    _provider: CryptoProvider = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        _check_common(self.app_id, self.domain, self.timeout)
        object.__setattr__(
            self,
            "_provider",
            _build_provider(
                self.crypto_provider,
                self.private_key,
                self.public_key,
                self.sign_private_key,
            ),
        )

    @property
    def provider(self) -> CryptoProvider:
        return self._provider

    def url(self, path: str) -> str:
        return _join(self.domain, path)

    @staticmethod
    def from_env(
        prefix: str = ENV_PREFIX, environ: Optional[Mapping[str, str]] = None
    ) -> MpcConfig:
        environ = os.environ if environ is None else environ
        return MpcConfig(
            app_id=_env(environ, prefix, "APP_ID"),
            private_key=_env(environ, prefix, "PRIVATE_KEY"),
            public_key=_env(environ, prefix, "PUBLIC_KEY"),
            sign_private_key=_env(environ, prefix, "SIGN_PRIVATE_KEY"),
            domain=_env(environ, prefix, "HOST", DEFAULT_HOST),
            debug=_env(environ, prefix, "DEBUG").lower() in TRUE_VALUES,
        )

    @staticmethod
    def load(path: str) -> MpcConfig:
        return MpcConfig(**_from_json(MpcConfig, path))

    def store(self, path: str):
        with open(path, "w") as file:
            json.dump(_to_json(self), file, indent=2)


class Test(unittest.TestCase):
    def setUp(self):
        from . import fixtures
        self.fixtures = fixtures

    def waas(self, **kwargs) -> WaasConfig:
        values = {
            "app_id": "app",
            "private_key": self.fixtures.TEST_PRIVATE_KEY,
            "public_key": self.fixtures.TEST_PUBLIC_KEY,
        }
        values.update(kwargs)
        return WaasConfig(**values)

    def test_url(self):
        self.assertEqual(
            self.waas().url("/user/info"), "https://openapi.chainup.com/v2/user/info"
        )
        self.assertEqual(
            self.waas(host="http://localhost:8080", version="/v2/").url("user/info"),
            "http://localhost:8080/v2/user/info",
        )
        self.assertEqual(self.waas(version="").url("/a"), "https://openapi.chainup.com/a")
        mpc = MpcConfig(
            app_id="app",
            private_key=self.fixtures.TEST_PRIVATE_KEY,
            public_key=self.fixtures.TEST_PUBLIC_KEY,
        )
        self.assertEqual(
            mpc.url("/api/mpc/coin_list"),
            "https://openapi.chainup.com/api/mpc/coin_list",
        )

    def test_validation(self):
        with self.assertRaises(ConfigError):
            self.waas(app_id="")
        with self.assertRaises(ConfigError):
            self.waas(host="")
        with self.assertRaises(ConfigError):
            self.waas(private_key="")
        with self.assertRaises(ConfigError):
            self.waas(public_key="not a key")
        with self.assertRaises(ConfigError):
            self.waas(timeout=0)
        with self.assertRaises(ConfigError):
            MpcConfig(
                app_id="app",
                private_key=self.fixtures.TEST_PRIVATE_KEY,
                public_key=self.fixtures.TEST_PUBLIC_KEY,
                sign_private_key="garbage",
            )

    def test_provider(self):
        config = self.waas()
        wire = config.provider.encrypt_with_private_key("{}")
        self.assertEqual(config.provider.decrypt_with_public_key(wire), "{}")

        custom = RsaCryptoProvider.from_strings(
            self.fixtures.TEST_PRIVATE_KEY, self.fixtures.TEST_PUBLIC_KEY
        )
        keyless = WaasConfig(app_id="app", crypto_provider=custom)
        self.assertIs(keyless.provider, custom)

    def test_immutable_and_repr(self):
        config = self.waas()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.app_id = "other"  # type: ignore[misc]
        self.assertNotIn("BEGIN", repr(config))
        self.assertEqual(config, self.waas())
        self.assertNotEqual(config, self.waas(debug=True))

    def test_from_env(self):
        environ = {
            "CHAINUP_APP_ID": "env-app",
            "CHAINUP_PRIVATE_KEY": self.fixtures.TEST_PRIVATE_KEY,
            "CHAINUP_PUBLIC_KEY": self.fixtures.TEST_PUBLIC_KEY_BASE64,
            "CHAINUP_SIGN_PRIVATE_KEY": self.fixtures.OTHER_PRIVATE_KEY,
            "CHAINUP_HOST": "http://localhost:9000/",
            "CHAINUP_DEBUG": "True",
        }
        waas = WaasConfig.from_env(environ=environ)
        self.assertEqual(waas.app_id, "env-app")
        self.assertTrue(waas.debug)
        self.assertEqual(waas.url("user/info"), "http://localhost:9000/v2/user/info")

        mpc = MpcConfig.from_env(environ=environ)
        self.assertEqual(mpc.sign_private_key, self.fixtures.OTHER_PRIVATE_KEY)

        with self.assertRaises(ConfigError):
            WaasConfig.from_env(environ={})

    def test_load_and_store(self):
        config = self.waas(debug=True, timeout=5.0)
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "chainup.json")
            config.store(path)
            with open(path) as file:
                stored = json.load(file)
            self.assertNotIn("crypto_provider", stored)
            self.assertNotIn("_provider", stored)
            self.assertEqual(WaasConfig.load(path), config)

            with open(path, "w") as file:
                json.dump({"app_id": "app", "colour": "blue"}, file)
            with self.assertRaises(ConfigError):
                WaasConfig.load(path)
