# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
HTTP transport shared by the custody clients.

A thin wrapper over :class:`httpx.AsyncClient`: form-encoded POSTs, query
string GETs, one timeout, SDK identification headers. Every failure (network
error, timeout, non-2xx status) surfaces as
:class:`~chainup_sdk.errors.TransportError`. Nothing is retried.
"""

import logging
import unittest
from typing import Dict, Optional

import httpx

from .errors import TransportError
from .metadata import Metadata

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HttpClient:
    client: httpx.AsyncClient
    debug: bool

    def __init__(
        self,
        timeout: float = 30.0,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        :param timeout: Seconds allowed for each request.
        :param debug: Log every request and response body at DEBUG level.
        :param transport: Replaces the network transport, e.g. with
            :class:`httpx.MockTransport` in tests.
        """
        headers = {
            Metadata.SDK_HEADER: Metadata.get_sdk_header_val(),
            "Content-Type": FORM_CONTENT_TYPE,
        }
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )
        self.debug = debug

    async def close(self):
        await self.client.aclose()

    async def post(self, url: str, data: Dict[str, str]) -> str:
        """Send ``data`` as a form body and return the response text."""
        if self.debug:
            logging.debug(f"[HTTP Request]: POST {url} {data}")
        return await self._send(self.client.build_request("POST", url, data=data))

    async def get(self, url: str, data: Dict[str, str]) -> str:
        """Send ``data`` as query parameters and return the response text."""
        if self.debug:
            logging.debug(f"[HTTP Request]: GET {url} {data}")
        return await self._send(self.client.build_request("GET", url, params=data))

    async def _send(self, request: httpx.Request) -> str:
        try:
            response = await self.client.send(request)
        except httpx.HTTPError as e:
            raise TransportError(f"{request.method} request failed: {e}") from e

        if self.debug:
            logging.debug(f"[HTTP Response]: {response.status_code} {response.text}")

        if response.status_code >= 400:
            raise TransportError(
                f"HTTP request failed with status {response.status_code}: {response.text}",
                response.status_code,
            )
        return response.text


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_post_and_get(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text='{"code":0}')

        client = HttpClient(transport=httpx.MockTransport(handler))
        self.assertEqual(
            await client.post("https://api.test/a", {"app_id": "x", "data": "y"}),
            '{"code":0}',
        )
        await client.get("https://api.test/b", {"app_id": "x", "data": "y z"})
        await client.close()

        post, get = seen
        self.assertEqual(post.method, "POST")
        self.assertEqual(post.content, b"app_id=x&data=y")
        self.assertEqual(post.headers["content-type"], FORM_CONTENT_TYPE)
        self.assertTrue(
            post.headers["user-agent"].startswith("chainup-custody-python-sdk/")
        )
        self.assertEqual(get.method, "GET")
        self.assertEqual(get.url.params["data"], "y z")

    async def test_http_status_error(self):
        client = HttpClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(502, text="bad"))
        )
        with self.assertRaises(TransportError) as context:
            await client.post("https://api.test/a", {})
        self.assertEqual(context.exception.status_code, 502)
        await client.close()

    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = HttpClient(transport=httpx.MockTransport(handler))
        with self.assertRaises(TransportError) as context:
            await client.get("https://api.test/a", {})
        self.assertIsNone(context.exception.status_code)
        await client.close()

    async def test_debug_logging(self):
        client = HttpClient(
            debug=True,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="ok")),
        )
        with self.assertLogs(level="DEBUG") as logs:
            await client.post("https://api.test/a", {"app_id": "x"})
        self.assertTrue(any("POST https://api.test/a" in line for line in logs.output))
        await client.close()
