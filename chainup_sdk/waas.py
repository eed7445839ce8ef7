# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client for the WaaS (Wallet-as-a-Service) custody API.

All endpoints are entries of :class:`WaasEndpoints` and go through
:meth:`WaasClient.request`; parameter names are the service's own. The client
also decodes the notifications the service pushes to the merchant callback
and encodes the merchant's answer to withdrawal confirmation requests.

Examples:
    Registering a user and reading a balance::

        from chainup_sdk.config import WaasConfig
        from chainup_sdk.waas import WaasClient, WaasEndpoints

        async with WaasClient(WaasConfig.from_env()) as client:
            user = await client.request(
                WaasEndpoints.REGISTER_MOBILE_USER, country="86", mobile="13800000000"
            )
            account = await client.request(
                WaasEndpoints.USER_ACCOUNT, uid=user.uid, symbol="ETH"
            )
            print(account.balance)

    Handling a callback::

        notify = client.notify_request(form["data"])
        if notify.side == TransactionSide.DEPOSIT.value:
            ...

    Confirming a withdrawal::

        verification = client.verify_request(form["data"])
        return client.verify_response(verification)
"""

import json
import unittest
from decimal import Decimal
from typing import Any, Mapping, Optional, Type, TypeVar, Union

import httpx
import pydantic

from . import models
from .base_api import BaseApi, Endpoint
from .config import WaasConfig
from .enums import QueryIdType
from .errors import CryptoError, RemoteError, ValidationError
from .rsa_keys import PrivateKey, PublicKey

R = TypeVar("R", bound=models.Record)


class WaasEndpoints:
    """Every WaaS endpoint with its result type and required parameters."""

    # Users
    REGISTER_MOBILE_USER = Endpoint(
        "POST", "/user/createUser", models.UserInfo, required=("country", "mobile")
    )
    REGISTER_EMAIL_USER = Endpoint(
        "POST", "/user/registerEmail", models.UserInfo, required=("email",)
    )
    GET_MOBILE_USER = Endpoint(
        "POST", "/user/info", models.UserInfo, required=("country", "mobile")
    )
    GET_EMAIL_USER = Endpoint("POST", "/user/info", models.UserInfo, required=("email",))
    SYNC_USER_LIST = Endpoint(
        "POST", "/user/syncList", models.UserInfo, many=True, required=("max_id",)
    )

    # Coins
    COIN_LIST = Endpoint("POST", "/user/getCoinList", models.CoinInfo, many=True)

    # Accounts and addresses
    USER_ACCOUNT = Endpoint(
        "POST",
        "/account/getByUidAndSymbol",
        models.UserAccountInfo,
        required=("uid", "symbol"),
    )
    DEPOSIT_ADDRESS = Endpoint(
        "POST",
        "/account/getDepositAddress",
        models.UserAddressInfo,
        required=("uid", "symbol"),
    )
    DEPOSIT_ADDRESS_INFO = Endpoint(
        "POST",
        "/account/getDepositAddressInfo",
        models.UserAddressInfo,
        required=("address",),
    )
    COMPANY_ACCOUNT = Endpoint(
        "POST",
        "/account/getCompanyBySymbol",
        models.CompanyAccountInfo,
        required=("symbol",),
    )
    SYNC_ADDRESS_LIST = Endpoint(
        "POST", "/address/syncList", models.UserAddressInfo, many=True, required=("max_id",)
    )

    # Billing
    WITHDRAW = Endpoint(
        "POST",
        "/billing/withdraw",
        models.WaasWithdrawResult,
        required=("request_id", "from_uid", "to_address", "amount", "symbol"),
    )
    WITHDRAW_LIST = Endpoint(
        "POST", "/billing/withdrawList", models.WaasWithdrawRecord, many=True, required=("ids",)
    )
    SYNC_WITHDRAW_LIST = Endpoint(
        "POST",
        "/billing/syncWithdrawList",
        models.WaasWithdrawRecord,
        many=True,
        required=("max_id",),
    )
    DEPOSIT_LIST = Endpoint(
        "POST", "/billing/depositList", models.WaasDepositRecord, many=True, required=("ids",)
    )
    SYNC_DEPOSIT_LIST = Endpoint(
        "POST",
        "/billing/syncDepositList",
        models.WaasDepositRecord,
        many=True,
        required=("max_id",),
    )
    MINER_FEE_LIST = Endpoint(
        "POST", "/billing/minerFeeList", models.MinerFeeRecord, many=True, required=("ids",)
    )
    SYNC_MINER_FEE_LIST = Endpoint(
        "POST",
        "/billing/syncMinerFeeList",
        models.MinerFeeRecord,
        many=True,
        required=("max_id",),
    )

    # Transfers between merchant accounts
    ACCOUNT_TRANSFER = Endpoint(
        "POST",
        "/account/transfer",
        models.TransferRecord,
        required=("request_id", "symbol", "amount", "from", "to"),
    )
    TRANSFER_LIST = Endpoint(
        "POST",
        "/account/transferList",
        models.TransferRecord,
        many=True,
        required=("ids", "ids_type"),
    )
    SYNC_TRANSFER_LIST = Endpoint(
        "POST",
        "/account/syncTransferList",
        models.TransferRecord,
        many=True,
        required=("max_id",),
    )


class WaasClient(BaseApi):
    """Async client for the WaaS API. Close it, or use it as a context manager."""

    config: WaasConfig

    def __init__(
        self, config: WaasConfig, transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(config, transport)

    #
    # Callback notifications
    #

    def _decrypt_notification(self, cipher: str, record: Type[R]) -> R:
        if not cipher:
            raise CryptoError("Cipher cannot be empty")
        raw = self.config.provider.decrypt_with_public_key(cipher)
        try:
            return record.from_dict(json.loads(raw))
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            raise ValidationError(f"Malformed {record.__name__}: {e}") from e

    def notify_request(self, cipher: str) -> models.NotifyData:
        """
        Decode a deposit or withdrawal notification.

        :param cipher: The ``data`` field the service posted to the callback URL.
        :raises CryptoError: If ``cipher`` is empty or does not decrypt.
        :raises ValidationError: If the plaintext is not a notification object.
        """
        return self._decrypt_notification(cipher, models.NotifyData)

    def verify_request(self, cipher: str) -> models.WithdrawVerification:
        """Decode a withdrawal the service asks the merchant to confirm."""
        return self._decrypt_notification(cipher, models.WithdrawVerification)

    def verify_response(
        self, verification: Union[models.WithdrawVerification, Mapping[str, Any]]
    ) -> str:
        """
        Encrypt the confirmation returned to the service for a withdrawal.

        :return: Ciphertext to use as the callback response body.
        """
        if isinstance(verification, models.Record):
            payload = verification.to_dict()
        else:
            payload = dict(verification)
        return self.config.provider.encrypt_with_private_key(
            json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
        )


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        from . import fixtures
        from .testing import MockCustodyService
        self.fixtures = fixtures
        self.MockCustodyService = MockCustodyService

    async def test_user_and_account(self):
        service = self.MockCustodyService(
            {
                "/v2/user/createUser": {
                    "code": 0,
                    "msg": "success",
                    "data": {"uid": 15036, "nickname": "alice"},
                },
                "/v2/account/getByUidAndSymbol": {
                    "code": "0",
                    "data": {"uid": "15036", "symbol": "ETH", "balance": "1.25", "frozen": "0"},
                },
            }
        )
        async with WaasClient(service.waas_config(), service.transport()) as client:
            user = await client.request(
                WaasEndpoints.REGISTER_MOBILE_USER, country="86", mobile="13800000000"
            )
            account = await client.request(
                WaasEndpoints.USER_ACCOUNT, uid=user.uid, symbol="ETH"
            )
        self.assertEqual(user.uid, 15036)
        self.assertEqual(user.nickname, "alice")
        self.assertEqual(account.balance, Decimal("1.25"))
        self.assertEqual(account.frozen, Decimal("0"))
        self.assertEqual(service.requests[1].args["uid"], 15036)

    async def test_required_parameters(self):
        service = self.MockCustodyService()
        async with WaasClient(service.waas_config(), service.transport()) as client:
            with self.assertRaises(ValidationError):
                await client.request(WaasEndpoints.REGISTER_MOBILE_USER, country="86")
            with self.assertRaises(ValidationError):
                await client.request(
                    WaasEndpoints.WITHDRAW,
                    request_id="w-1",
                    from_uid=1,
                    to_address="0xabc",
                    symbol="ETH",
                )
        self.assertEqual(service.requests, [])

    async def test_transfers(self):
        service = self.MockCustodyService(
            {
                "/v2/account/transfer": {
                    "code": 0,
                    "data": {"request_id": "t-1", "receipt": "abc", "from": "1", "to": "2"},
                },
                "/v2/account/transferList": {
                    "code": 0,
                    "data": {"list": [{"request_id": "t-1", "amount": "3.5"}]},
                },
            }
        )
        async with WaasClient(service.waas_config(), service.transport()) as client:
            transfer = await client.request(
                WaasEndpoints.ACCOUNT_TRANSFER,
                request_id="t-1",
                symbol="USDT",
                amount="3.5",
                from_="1",
                to="2",
            )
            records = await client.request(
                WaasEndpoints.TRANSFER_LIST,
                ids=["t-1"],
                ids_type=QueryIdType.REQUEST_ID.value,
            )
        self.assertEqual(transfer.receipt, "abc")
        self.assertEqual(transfer.from_, "1")
        self.assertEqual(records[0].amount, Decimal("3.5"))
        self.assertEqual(service.requests[0].args["from"], "1")
        self.assertEqual(service.requests[1].args["ids_type"], "request_id")

    async def test_withdraw_error(self):
        service = self.MockCustodyService(
            {"/v2/billing/withdraw": {"code": "120402", "msg": "insufficient balance"}}
        )
        async with WaasClient(service.waas_config(), service.transport()) as client:
            with self.assertRaises(RemoteError) as context:
                await client.request(
                    WaasEndpoints.WITHDRAW,
                    request_id="w-1",
                    from_uid=15036,
                    to_address="0xabc",
                    amount="10",
                    symbol="ETH",
                )
        self.assertEqual(context.exception.code, 120402)

    async def test_sync_lists(self):
        service = self.MockCustodyService(
            {
                "/v2/billing/syncDepositList": {
                    "code": 0,
                    "data": [{"id": 1, "amount": "0.1"}, {"id": "2", "is_mining": "1"}],
                }
            }
        )
        async with WaasClient(service.waas_config(), service.transport()) as client:
            deposits = await client.request(WaasEndpoints.SYNC_DEPOSIT_LIST, max_id=0)
        self.assertEqual([deposit.id for deposit in deposits], [1, 2])
        self.assertEqual(deposits[1].is_mining, 1)

    async def test_notifications(self):
        platform_key = PrivateKey.from_str(self.fixtures.OTHER_PRIVATE_KEY)
        client = WaasClient(self.MockCustodyService().waas_config())

        cipher = platform_key.encrypt_private(
            json.dumps({"side": "deposit", "id": "88", "amount": "0.5", "symbol": "ETH"})
        )
        notify = client.notify_request(cipher)
        self.assertEqual(notify.side, "deposit")
        self.assertEqual(notify.id, 88)
        self.assertEqual(notify.amount, Decimal("0.5"))

        with self.assertRaises(CryptoError):
            client.notify_request("")
        with self.assertRaises(CryptoError):
            client.notify_request(
                PrivateKey.from_str(self.fixtures.TEST_PRIVATE_KEY).encrypt_private("{}")
            )
        with self.assertRaises(ValidationError):
            client.notify_request(platform_key.encrypt_private("[1, 2]"))
        await client.close()

    async def test_withdraw_verification(self):
        platform_key = PrivateKey.from_str(self.fixtures.OTHER_PRIVATE_KEY)
        client = WaasClient(self.MockCustodyService().waas_config())
        request = {
            "request_id": "w-1",
            "from_uid": 15036,
            "to_address": "0xabc",
            "amount": "1.50",
            "symbol": "ETH",
            "check_sum": "c0ffee",
        }
        verification = client.verify_request(
            platform_key.encrypt_private(json.dumps(request))
        )
        self.assertEqual(verification.amount, "1.50")

        answer = client.verify_response(verification)
        merchant_key = PublicKey.from_str(self.fixtures.TEST_PUBLIC_KEY)
        self.assertEqual(json.loads(merchant_key.decrypt_public(answer)), request)

        with self.assertRaises(CryptoError):
            client.verify_request("")
        await client.close()
