# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
The request pipeline shared by every custody endpoint.

Each call is one request/response cycle:

1. Check the endpoint's required parameters (``ValidationError``).
2. Serialize the parameters to JSON with ``time`` (milliseconds) and
   ``charset`` added.
3. Encrypt that JSON with the merchant private key.
4. Send ``app_id`` and the ciphertext as ``data``; POSTs carry them as a
   form body, GETs as the query string.
5. If the reply's ``data`` field is a string, decrypt it with the platform
   public key; the plaintext is the real envelope
   (``{"code": ..., "msg": ..., "data": ...}``). A reply that cannot be
   decrypted is used as is, which is how the service reports some errors.
6. A non-zero ``code`` raises ``RemoteError``.
7. Decode ``data`` into the endpoint's result type.

Endpoints are described declaratively with :class:`Endpoint`, so adding one
means adding a table entry rather than a method.
"""

import json
import logging
import os
import subprocess
import sys
import time
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import httpx
import pydantic

from . import models
from .config import MpcConfig, WaasConfig
from .errors import CryptoError, RemoteError, TransportError, ValidationError
from .http_client import HttpClient

ClientConfig = Union[WaasConfig, MpcConfig]

# ``code`` value used when a reply carries none
MISSING_CODE = -1


@dataclass(frozen=True)
class Endpoint:
    """One remote endpoint.

    :param method: ``GET`` or ``POST``.
    :param path: Path relative to the configured host.
    :param result: A :class:`~chainup_sdk.models.Record` subclass; ``bool``
        for calls that only acknowledge; ``None`` to discard ``data``.
    :param many: Whether ``data`` holds a list of ``result``.
    :param required: Parameters that must be present and non-empty.
    """

    method: str
    path: str
    result: Any = None
    many: bool = False
    required: Tuple[str, ...] = ()


def wire_name(name: str) -> str:
    return name[:-1] if name.endswith("_") else name


def join_values(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return value


class BaseApi:
    config: ClientConfig
    http: HttpClient

    def __init__(
        self, config: ClientConfig, transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self.http = HttpClient(config.timeout, config.debug, transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        await self.http.close()

    async def request(self, endpoint: Endpoint, **params: Any) -> Any:
        """
        Call an endpoint and decode its result.

        Parameters whose value is ``None`` are not sent. Lists and tuples are
        sent comma separated, and a trailing underscore is dropped from a
        parameter name so wire names such as ``from`` can be passed as
        ``from_``.

        :raises ValidationError: If a required parameter is missing.
        :raises RemoteError: If the service answers with a non-zero code.
        :raises TransportError: If the exchange fails or the reply is unreadable.
        """
        params = {
            wire_name(key): join_values(value)
            for key, value in params.items()
            if value is not None
        }
        for name in endpoint.required:
            if params.get(name) in (None, ""):
                raise ValidationError(f"Parameter '{name}' is required")
        envelope = await self.execute(endpoint.method, endpoint.path, params)
        return self.decode(endpoint, envelope)

    def build_args(self, params: Mapping[str, Any]) -> str:
        args = dict(params)
        args["time"] = int(time.time() * 1000)
        args["charset"] = self.config.charset
        return json.dumps(args, separators=(",", ":"), ensure_ascii=False, default=str)

    async def execute(
        self, method: str, path: str, params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Send one encrypted request and return the decrypted envelope unchecked."""
        raw = self.build_args(params)
        if self.config.debug:
            logging.debug(f"[Request args]: {path} {raw}")
        form = {
            "app_id": self.config.app_id,
            "data": self.config.provider.encrypt_with_private_key(raw),
        }

        url = self.config.url(path)
        if method.upper() == "GET":
            body = await self.http.get(url, form)
        else:
            body = await self.http.post(url, form)

        response = self._parse(body)
        cipher = response.get("data")
        if not isinstance(cipher, str):
            return response
        try:
            decrypted = self.config.provider.decrypt_with_public_key(cipher)
        except CryptoError as e:
            if self.config.debug:
                logging.debug(f"[Response not encrypted]: {e}")
            return response
        try:
            envelope = self._parse(decrypted)
        except TransportError:
            if self.config.debug:
                logging.debug(f"[Decrypted response is not an object]: {decrypted}")
            return response
        if self.config.debug:
            logging.debug(f"[Decrypted response]: {decrypted}")
        return envelope

    @staticmethod
    def check(envelope: Mapping[str, Any]):
        """Raise ``RemoteError`` unless ``code`` is zero (int or numeric string)."""
        code = envelope.get("code")
        try:
            code = int(code) if not isinstance(code, bool) else MISSING_CODE
        except (TypeError, ValueError):
            code = MISSING_CODE
        if code != 0:
            message = envelope.get("msg")
            raise RemoteError(
                code,
                message if isinstance(message, str) else "Unknown error",
                envelope.get("data"),
            )

    def decode(self, endpoint: Endpoint, envelope: Mapping[str, Any]) -> Any:
        self.check(envelope)
        if endpoint.result is None:
            return None
        if endpoint.result is bool:
            return True

        data = envelope.get("data")
        if isinstance(data, str):
            # Some MPC replies encrypt the inner data once more.
            try:
                data = self._parse_any(self.config.provider.decrypt_with_public_key(data))
            except CryptoError as e:
                raise self._unexpected(endpoint, e) from e
        try:
            if endpoint.many:
                return [endpoint.result.from_dict(item) for item in self._items(endpoint, data)]
            return endpoint.result.from_dict(data if data is not None else {})
        except pydantic.ValidationError as e:
            raise self._unexpected(endpoint, e) from e

    @staticmethod
    def _unexpected(endpoint: Endpoint, reason: Any) -> TransportError:
        return TransportError(
            f"Unexpected {endpoint.result.__name__} payload from {endpoint.path}: {reason}"
        )

    @staticmethod
    def _items(endpoint: Endpoint, data: Any) -> List[Any]:
        if data is None:
            return []
        if isinstance(data, Mapping) and "list" in data:
            data = data["list"] if data["list"] is not None else []
        if not isinstance(data, list):
            raise BaseApi._unexpected(endpoint, f"expected a list, got {data!r}")
        return data

    @staticmethod
    def _parse_any(body: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise TransportError(f"Response is not valid JSON: {body[:200]}") from e

    @staticmethod
    def _parse(body: str) -> Dict[str, Any]:
        response = BaseApi._parse_any(body)
        if not isinstance(response, dict):
            raise TransportError(f"Response is not a JSON object: {body[:200]}")
        return response


class Test(unittest.IsolatedAsyncioTestCase):
    USER_INFO = Endpoint("POST", "/user/info", models.UserInfo)
    COIN_LIST = Endpoint("POST", "/user/getCoinList", models.CoinInfo, many=True)

    def setUp(self):
        from .testing import MockCustodyService
        self.MockCustodyService = MockCustodyService

    async def test_round_trip(self):
        service = self.MockCustodyService(
            {"/v2/user/info": {"code": 0, "msg": "success", "data": {"uid": "15036"}}}
        )
        async with BaseApi(service.waas_config(), service.transport()) as api:
            user = await api.request(self.USER_INFO, country="86", mobile="130", email=None)
        self.assertEqual(user, models.UserInfo(uid=15036))

        received = service.requests[0]
        self.assertEqual(received.method, "POST")
        self.assertEqual(received.app_id, "test-app")
        self.assertEqual(received.args["mobile"], "130")
        self.assertEqual(received.args["charset"], "UTF-8")
        self.assertIsInstance(received.args["time"], int)
        self.assertNotIn("email", received.args)

    async def test_parameter_names_and_lists(self):
        endpoint = Endpoint("GET", "/account/transferList", models.TransferRecord, many=True)
        service = self.MockCustodyService({"/v2/account/transferList": {"code": 0, "data": []}})
        async with BaseApi(service.waas_config(), service.transport()) as api:
            await api.request(endpoint, ids=["r-1", "r-2"], from_="1001", max_id=0)
        received = service.requests[0]
        self.assertEqual(received.method, "GET")
        self.assertEqual(received.args["ids"], "r-1,r-2")
        self.assertEqual(received.args["from"], "1001")
        self.assertEqual(received.args["max_id"], 0)

    async def test_lists(self):
        coins = [{"symbol": "BTC"}, {"symbol": "ETH", "decimals": "18"}]
        for data in (coins, {"list": coins}):
            service = self.MockCustodyService(
                {"/v2/user/getCoinList": {"code": "0", "data": data}}
            )
            async with BaseApi(service.waas_config(), service.transport()) as api:
                result = await api.request(self.COIN_LIST)
            self.assertEqual([coin.symbol for coin in result], ["BTC", "ETH"])
            self.assertEqual(result[1].decimals, 18)

        service = self.MockCustodyService({"/v2/user/getCoinList": {"code": 0}})
        async with BaseApi(service.waas_config(), service.transport()) as api:
            self.assertEqual(await api.request(self.COIN_LIST), [])

    async def test_remote_error(self):
        service = self.MockCustodyService(
            {"/v2/user/info": {"code": "110065", "msg": "user does not exist"}}
        )
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(RemoteError) as context:
                await api.request(self.USER_INFO, email="a@b.c")
        self.assertEqual(context.exception.code, 110065)
        self.assertEqual(context.exception.message, "user does not exist")

    async def test_unencrypted_error_reply(self):
        service = self.MockCustodyService(
            {"/v2/user/info": {"code": 100005, "msg": "sign error", "data": "garbage"}},
            encrypt=False,
        )
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(RemoteError) as context:
                await api.request(self.USER_INFO, email="a@b.c")
        self.assertEqual(context.exception.code, 100005)
        self.assertEqual(context.exception.data, "garbage")

    async def test_missing_code(self):
        service = self.MockCustodyService({"/v2/user/info": {"data": {}}})
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(RemoteError) as context:
                await api.request(self.USER_INFO)
        self.assertEqual(context.exception.code, MISSING_CODE)
        self.assertEqual(context.exception.message, "Unknown error")

    async def test_required_params(self):
        endpoint = Endpoint("POST", "/user/info", models.UserInfo, required=("email",))
        service = self.MockCustodyService()
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(ValidationError):
                await api.request(endpoint, email="")
        self.assertEqual(service.requests, [])

    async def test_transport_errors(self):
        service = self.MockCustodyService()
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(TransportError) as context:
                await api.request(self.USER_INFO)
        self.assertEqual(context.exception.status_code, 404)

        not_json = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        async with BaseApi(service.waas_config(), not_json) as api:
            with self.assertRaises(TransportError):
                await api.request(self.USER_INFO)

    async def test_bad_payload(self):
        service = self.MockCustodyService(
            {"/v2/user/info": {"code": 0, "data": {"uid": "not-a-number"}}}
        )
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(TransportError):
                await api.request(self.USER_INFO)

    async def test_plain_string_data(self):
        service = self.MockCustodyService(
            {"/v2/user/info": {"code": 0, "msg": "success", "data": "success"}}
        )
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(TransportError) as context:
                await api.request(self.USER_INFO)
            self.assertIsInstance(context.exception.__cause__, CryptoError)
            acknowledged = Endpoint("POST", "/user/info", bool)
            self.assertIs(await api.request(acknowledged), True)
            discarded = Endpoint("POST", "/user/info")
            self.assertIsNone(await api.request(discarded))

    async def test_list_payload_not_a_list(self):
        service = self.MockCustodyService(
            {"/v2/user/getCoinList": {"code": 0, "data": {"symbol": "BTC"}}}
        )
        async with BaseApi(service.waas_config(), service.transport()) as api:
            with self.assertRaises(TransportError):
                await api.request(self.COIN_LIST)

    def test_clients_do_not_load_test_helpers(self):
        script = (
            "import sys, chainup_sdk.waas, chainup_sdk.mpc; "
            "print(sorted(m for m in ('chainup_sdk.testing', 'chainup_sdk.fixtures') "
            "if m in sys.modules))"
        )
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        result = subprocess.run(
            [sys.executable, "-c", script],
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
        self.assertEqual(result.stdout.strip(), "[]")

    async def test_debug_logging_hides_keys(self):
        service = self.MockCustodyService({"/v2/user/info": {"code": 0, "data": {}}})
        config = service.waas_config(debug=True)
        async with BaseApi(config, service.transport()) as api:
            with self.assertLogs(level="DEBUG") as logs:
                await api.request(self.USER_INFO, email="a@b.c")
        output = "\n".join(logs.output)
        self.assertIn("a@b.c", output)
        self.assertNotIn("PRIVATE KEY", output)
