# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
An in-process stand-in for the custody service, for tests.

:class:`MockCustodyService` plugs into :class:`httpx.MockTransport`. It reads
each request the way the service does (decrypting ``data`` with the merchant
public key) and answers with a canned envelope encrypted with the platform
private key, so a client under test runs its complete encryption pipeline.

Examples:
    ::

        service = MockCustodyService(
            {"/v2/user/info": {"code": 0, "msg": "success", "data": {"uid": 1}}}
        )
        client = WaasClient(service.waas_config(), transport=service.transport())
        user = await client.request(WaasEndpoints.GET_MOBILE_USER, country="86", mobile="1")
        service.requests[0].args["mobile"]  # '1'
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx

from . import fixtures
from .config import MpcConfig, WaasConfig
from .rsa_keys import PrivateKey, PublicKey

Reply = Union[Mapping[str, Any], Callable[[Dict[str, Any]], Mapping[str, Any]]]


@dataclass
class ReceivedRequest:
    method: str
    path: str
    app_id: str
    args: Dict[str, Any]


class MockCustodyService:
    """Canned replies keyed by URL path.

    A reply is an envelope such as ``{"code": 0, "msg": "success", "data": ...}``
    or a callable receiving the decrypted request arguments and returning one.
    Unknown paths answer HTTP 404.
    """

    merchant_key: PublicKey
    platform_key: PrivateKey
    replies: Dict[str, Reply]
    requests: List[ReceivedRequest]
    encrypt: bool

    def __init__(
        self,
        replies: Optional[Dict[str, Reply]] = None,
        encrypt: bool = True,
        merchant_key: str = fixtures.TEST_PUBLIC_KEY,
        platform_key: str = fixtures.OTHER_PRIVATE_KEY,
    ):
        self.merchant_key = PublicKey.from_str(merchant_key)
        self.platform_key = PrivateKey.from_str(platform_key)
        self.replies = dict(replies or {})
        self.requests = []
        self.encrypt = encrypt

    def waas_config(self, **kwargs) -> WaasConfig:
        values: Dict[str, Any] = {
            "app_id": "test-app",
            "private_key": fixtures.TEST_PRIVATE_KEY,
            "public_key": fixtures.OTHER_PUBLIC_KEY,
            "host": "https://custody.test/",
        }
        values.update(kwargs)
        return WaasConfig(**values)

    def mpc_config(self, **kwargs) -> MpcConfig:
        values: Dict[str, Any] = {
            "app_id": "test-app",
            "private_key": fixtures.TEST_PRIVATE_KEY,
            "public_key": fixtures.OTHER_PUBLIC_KEY,
            "domain": "https://custody.test/",
        }
        values.update(kwargs)
        return MpcConfig(**values)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            form = request.url.params
        else:
            form = httpx.QueryParams(request.content.decode("utf-8"))
        args = json.loads(self.merchant_key.decrypt_public(form["data"]))
        self.requests.append(
            ReceivedRequest(request.method, request.url.path, form["app_id"], args)
        )

        reply = self.replies.get(request.url.path)
        if reply is None:
            return httpx.Response(404, text="not found")
        envelope = reply(args) if callable(reply) else reply
        body = json.dumps(envelope)
        if self.encrypt:
            body = json.dumps({"data": self.platform_key.encrypt_private(body)})
        return httpx.Response(200, text=body)
