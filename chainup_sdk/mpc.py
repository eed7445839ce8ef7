# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client for the MPC custody API.

Most endpoints are plain entries of :class:`MpcEndpoints` called through
:meth:`MpcClient.request`. Operations with extra rules get their own method:
withdrawals and Web3 transactions can carry a transaction signature, and
wallet creation, show status changes and Tron resource purchases validate
their arguments before anything is sent.
"""

import json
import unittest
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Union
from unittest import mock

import httpx
import pydantic

from . import models, signer
from .base_api import BaseApi, Endpoint
from .config import MpcConfig
from .crypto_provider import RsaCryptoProvider
from .enums import MpcWeb3TransType, TronBuyType, WalletShowStatus
from .errors import CryptoError, RemoteError, SigningError, ValidationError
from .rsa_keys import PrivateKey, PublicKey

MAX_WALLET_NAME_LENGTH = 50

# buy_type values that need address_to and contract_address
TRON_BUY_TYPES_WITH_TARGET = (0, 2)


class MpcEndpoints:
    # Wallets
    CREATE_WALLET = Endpoint(
        "POST", "/api/mpc/sub_wallet/create", models.WalletInfo, required=("sub_wallet_name",)
    )
    CREATE_ADDRESS = Endpoint(
        "POST",
        "/api/mpc/sub_wallet/create/address",
        models.WalletAddressInfo,
        required=("sub_wallet_id", "symbol"),
    )
    ADDRESS_LIST = Endpoint(
        "POST",
        "/api/mpc/sub_wallet/get/address/list",
        models.WalletAddressInfo,
        many=True,
        required=("sub_wallet_id", "symbol"),
    )
    WALLET_ASSETS = Endpoint(
        "GET",
        "/api/mpc/sub_wallet/assets",
        models.WalletAssetInfo,
        required=("sub_wallet_id", "symbol"),
    )
    CHANGE_SHOW_STATUS = Endpoint(
        "POST",
        "/api/mpc/sub_wallet/change_show_status",
        bool,
        required=("sub_wallet_ids", "app_show_status"),
    )
    ADDRESS_INFO = Endpoint(
        "GET", "/api/mpc/sub_wallet/address/info", models.AddressDetail, required=("address",)
    )

    # Withdrawals and deposits
    WITHDRAW = Endpoint(
        "POST",
        "/api/mpc/billing/withdraw",
        models.MpcWithdrawResult,
        required=("request_id", "sub_wallet_id", "symbol", "amount", "address_to"),
    )
    WITHDRAW_LIST = Endpoint(
        "GET", "/api/mpc/billing/withdraw_list", models.MpcWithdrawRecord, many=True, required=("ids",)
    )
    SYNC_WITHDRAW_LIST = Endpoint(
        "GET",
        "/api/mpc/billing/sync_withdraw_list",
        models.MpcWithdrawRecord,
        many=True,
        required=("max_id",),
    )
    DEPOSIT_LIST = Endpoint(
        "GET", "/api/mpc/billing/deposit_list", models.MpcDepositRecord, many=True, required=("ids",)
    )
    SYNC_DEPOSIT_LIST = Endpoint(
        "GET",
        "/api/mpc/billing/sync_deposit_list",
        models.MpcDepositRecord,
        many=True,
        required=("max_id",),
    )

    # Web3
    WEB3_CREATE = Endpoint(
        "POST",
        "/api/mpc/web3/trans/create",
        models.Web3TransRecord,
        required=(
            "request_id",
            "sub_wallet_id",
            "main_chain_symbol",
            "interactive_contract",
            "amount",
            "gas_price",
            "gas_limit",
            "input_data",
            "trans_type",
        ),
    )
    WEB3_ACCELERATE = Endpoint(
        "POST",
        "/api/mpc/web3/pending",
        models.Web3TransRecord,
        required=("trans_id", "gas_price", "gas_limit"),
    )
    WEB3_LIST = Endpoint(
        "GET", "/api/mpc/web3/trans_list", models.Web3TransRecord, many=True, required=("ids",)
    )
    SYNC_WEB3_LIST = Endpoint(
        "GET",
        "/api/mpc/web3/sync_trans_list",
        models.Web3TransRecord,
        many=True,
        required=("max_id",),
    )

    # Auto collection
    AUTO_COLLECT_SUB_WALLETS = Endpoint(
        "GET", "/api/mpc/auto_collect/sub_wallets", models.AutoCollectResult, required=("symbol",)
    )
    SET_AUTO_COLLECT_SYMBOL = Endpoint(
        "POST",
        "/api/mpc/auto_collect/symbol/set",
        None,
        required=("symbol", "collect_min", "fueling_limit"),
    )
    SYNC_AUTO_COLLECT_LIST = Endpoint(
        "GET",
        "/api/mpc/billing/sync_auto_collect_list",
        models.AutoCollectRecord,
        many=True,
        required=("max_id",),
    )

    # Tron resources
    TRON_DELEGATE = Endpoint(
        "POST",
        "/api/mpc/tron/delegate",
        models.TronDelegateResult,
        required=("request_id", "address_from", "service_charge_type"),
    )
    TRON_DELEGATE_LIST = Endpoint(
        "POST",
        "/api/mpc/tron/delegate/trans_list",
        models.TronResourceRecord,
        many=True,
        required=("ids",),
    )
    SYNC_TRON_DELEGATE_LIST = Endpoint(
        "POST",
        "/api/mpc/tron/delegate/sync_trans_list",
        models.TronResourceRecord,
        many=True,
        required=("max_id",),
    )

    # Workspace
    COIN_LIST = Endpoint(
        "GET", "/api/mpc/coin_list", models.CoinDetails, many=True, required=("symbol",)
    )
    CHAIN_HEIGHT = Endpoint(
        "GET", "/api/mpc/chain_height", models.BlockHeightInfo, required=("base_symbol",)
    )
    SUPPORTED_COINS = Endpoint("GET", "/api/mpc/wallet/open_coin", models.SupportedCoins)


class MpcClient(BaseApi):
    """Async client for the MPC API. Close it, or use it as a context manager."""

    config: MpcConfig

    def __init__(
        self, config: MpcConfig, transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(config, transport)

    def _transaction_sign(self, operation: str, sign_params: Dict[str, Any]) -> str:
        # Only a custom provider can lack a signing key; MpcConfig requires one otherwise.
        try:
            return self.config.provider.sign(signer.canonicalize(sign_params))
        except CryptoError as e:
            raise ValidationError(
                f"{operation} needs a signing key when need_transaction_sign is set: {e}"
            ) from e

    async def create_wallet(
        self, sub_wallet_name: str, app_show_status: Optional[int] = None
    ) -> models.WalletInfo:
        if len(sub_wallet_name) > MAX_WALLET_NAME_LENGTH:
            raise ValidationError(
                f"Wallet name cannot be longer than {MAX_WALLET_NAME_LENGTH} characters"
            )
        return await self.request(
            MpcEndpoints.CREATE_WALLET,
            sub_wallet_name=sub_wallet_name,
            app_show_status=app_show_status,
        )

    async def change_show_status(
        self, sub_wallet_ids: Union[str, Sequence[int]], app_show_status: int
    ) -> bool:
        """Show or hide wallets in the app.

        :param sub_wallet_ids: Wallet ids, as a list or comma separated.
        :param app_show_status: ``WalletShowStatus.VISIBLE`` or ``WalletShowStatus.HIDDEN``.
        """
        if app_show_status not in (WalletShowStatus.VISIBLE, WalletShowStatus.HIDDEN):
            raise ValidationError("Parameter 'app_show_status' must be 1 or 2")
        return await self.request(
            MpcEndpoints.CHANGE_SHOW_STATUS,
            sub_wallet_ids=sub_wallet_ids,
            app_show_status=int(app_show_status),
        )

    async def withdraw(
        self,
        request_id: str,
        sub_wallet_id: int,
        symbol: str,
        amount: str,
        address_to: str,
        from_: Optional[str] = None,
        memo: Optional[str] = None,
        remark: Optional[str] = None,
        outputs: Optional[str] = None,
        need_transaction_sign: bool = False,
    ) -> models.MpcWithdrawResult:
        """
        Withdraw from a wallet to an external address.

        With ``need_transaction_sign`` the request carries a ``sign`` field: the
        canonical form of the withdrawal's signed fields, signed with the
        configured sign key. Use it when transaction signing is enabled for the
        workspace.

        :param amount: Decimal amount as a string, sent unchanged.
        :raises ValidationError: If a required field is empty, or signing is
            requested without a key to sign with.
        """
        params: Dict[str, Any] = {
            "request_id": request_id,
            "sub_wallet_id": sub_wallet_id,
            "symbol": symbol,
            "amount": amount,
            "address_to": address_to,
            "from": from_,
            "memo": memo,
            "remark": remark,
            "outputs": outputs,
        }
        for name in ("request_id", "symbol", "amount", "address_to"):
            if not params[name]:
                raise ValidationError(f"Parameter '{name}' is required")
        if need_transaction_sign:
            params["sign"] = self._transaction_sign(
                "MPC withdrawal",
                signer.withdraw_sign_params(
                    request_id, sub_wallet_id, symbol, address_to, amount, memo, outputs
                ),
            )
        return await self.request(MpcEndpoints.WITHDRAW, **params)

    async def web3_transaction(
        self,
        request_id: str,
        sub_wallet_id: int,
        main_chain_symbol: str,
        interactive_contract: str,
        amount: str,
        gas_price: str,
        gas_limit: str,
        input_data: str,
        trans_type: Union[str, int],
        from_: Optional[str] = None,
        dapp_name: Optional[str] = None,
        dapp_url: Optional[str] = None,
        dapp_img: Optional[str] = None,
        need_transaction_sign: bool = False,
    ) -> models.Web3TransRecord:
        """
        Create a Web3 transaction (contract call or approval).

        Signing works as for :meth:`withdraw`, over the Web3 signed fields.
        """
        params: Dict[str, Any] = {
            "request_id": request_id,
            "sub_wallet_id": sub_wallet_id,
            "main_chain_symbol": main_chain_symbol,
            "interactive_contract": interactive_contract,
            "amount": amount,
            "gas_price": gas_price,
            "gas_limit": gas_limit,
            "input_data": input_data,
            "trans_type": str(int(trans_type)) if isinstance(trans_type, int) else trans_type,
            "from": from_,
            "dapp_name": dapp_name,
            "dapp_url": dapp_url,
            "dapp_img": dapp_img,
        }
        for name in (
            "request_id",
            "main_chain_symbol",
            "interactive_contract",
            "amount",
            "gas_price",
            "gas_limit",
            "input_data",
            "trans_type",
        ):
            if not params[name]:
                raise ValidationError(f"Parameter '{name}' is required")
        if need_transaction_sign:
            params["sign"] = self._transaction_sign(
                "MPC Web3 transaction",
                signer.web3_sign_params(
                    request_id,
                    sub_wallet_id,
                    main_chain_symbol,
                    interactive_contract,
                    amount,
                    input_data,
                ),
            )
        return await self.request(MpcEndpoints.WEB3_CREATE, **params)

    async def tron_delegate(
        self,
        request_id: str,
        address_from: str,
        service_charge_type: str,
        buy_type: Optional[int] = None,
        resource_type: Optional[int] = None,
        energy_num: Optional[int] = None,
        net_num: Optional[int] = None,
        address_to: Optional[str] = None,
        contract_address: Optional[str] = None,
    ) -> models.TronDelegateResult:
        """Buy Tron energy or bandwidth for an address."""
        if buy_type in TRON_BUY_TYPES_WITH_TARGET and (
            address_to is None or contract_address is None
        ):
            raise ValidationError(
                "For buy_type 0 or 2, address_to and contract_address are required"
            )
        return await self.request(
            MpcEndpoints.TRON_DELEGATE,
            request_id=request_id,
            address_from=address_from,
            service_charge_type=service_charge_type,
            buy_type=buy_type,
            resource_type=resource_type,
            energy_num=energy_num,
            net_num=net_num,
            address_to=address_to,
            contract_address=contract_address,
        )

    def decrypt_notification(self, cipher: str) -> models.MpcNotifyData:
        """
        Decode a notification pushed to the merchant callback.

        :raises CryptoError: If ``cipher`` is empty or does not decrypt.
        :raises ValidationError: If the plaintext is not a notification object.
        """
        if not cipher:
            raise CryptoError("Cipher cannot be empty")
        raw = self.config.provider.decrypt_with_public_key(cipher)
        try:
            return models.MpcNotifyData.from_dict(json.loads(raw))
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            raise ValidationError(f"Malformed notification: {e}") from e


class Test(unittest.IsolatedAsyncioTestCase):
    WITHDRAW_PATH = "/api/mpc/billing/withdraw"
    WEB3_PATH = "/api/mpc/web3/trans/create"

    def setUp(self):
        from . import fixtures
        from .testing import MockCustodyService
        self.fixtures = fixtures
        self.MockCustodyService = MockCustodyService

    def withdraw_service(self):
        return self.MockCustodyService(
            {self.WITHDRAW_PATH: {"code": 0, "msg": "success", "data": {"withdraw_id": "501"}}}
        )

    async def test_wallets(self):
        service = self.MockCustodyService(
            {
                "/api/mpc/sub_wallet/create": {
                    "code": 0,
                    "data": {"sub_wallet_id": 1000537, "sub_wallet_name": "ops"},
                },
                "/api/mpc/sub_wallet/get/address/list": {
                    "code": 0,
                    "data": [{"address": "0xabc", "addr_type": 1}],
                },
                "/api/mpc/sub_wallet/assets": {
                    "code": 0,
                    "data": {"normal_balance": "2.5", "lock_balance": "0"},
                },
            }
        )
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            wallet = await client.create_wallet("ops")
            addresses = await client.request(
                MpcEndpoints.ADDRESS_LIST, sub_wallet_id=wallet.sub_wallet_id, symbol="ETH"
            )
            assets = await client.request(
                MpcEndpoints.WALLET_ASSETS, sub_wallet_id=wallet.sub_wallet_id, symbol="ETH"
            )
        self.assertEqual(wallet.sub_wallet_id, 1000537)
        self.assertEqual(addresses[0].address, "0xabc")
        self.assertEqual(assets.normal_balance, Decimal("2.5"))
        self.assertNotIn("app_show_status", service.requests[0].args)
        self.assertEqual(service.requests[1].method, "POST")
        self.assertEqual(service.requests[2].method, "GET")
        self.assertEqual(service.requests[2].args["charset"], "utf-8")

    async def test_create_wallet_validation(self):
        service = self.MockCustodyService()
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            with self.assertRaises(ValidationError):
                await client.create_wallet("")
            with self.assertRaises(ValidationError):
                await client.create_wallet("w" * 51)
        self.assertEqual(service.requests, [])

    async def test_change_show_status(self):
        service = self.MockCustodyService(
            {"/api/mpc/sub_wallet/change_show_status": {"code": 0, "data": True}}
        )
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            self.assertTrue(
                await client.change_show_status([1001, 1002], WalletShowStatus.HIDDEN)
            )
            with self.assertRaises(ValidationError):
                await client.change_show_status("1001", 3)
        self.assertEqual(len(service.requests), 1)
        self.assertEqual(service.requests[0].args["sub_wallet_ids"], "1001,1002")
        self.assertEqual(service.requests[0].args["app_show_status"], 2)

    async def test_withdraw_unsigned(self):
        service = self.withdraw_service()
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            result = await client.withdraw("w-1", 1001, "ETH", "0.5", "0xabc", memo="m")
        self.assertEqual(result.withdraw_id, 501)
        args = service.requests[0].args
        self.assertNotIn("sign", args)
        self.assertNotIn("from", args)
        self.assertEqual(args["memo"], "m")
        self.assertEqual(args["amount"], "0.5")

    async def test_withdraw_signed(self):
        service = self.withdraw_service()
        config = service.mpc_config(sign_private_key=self.fixtures.OTHER_PRIVATE_KEY)
        async with MpcClient(config, service.transport()) as client:
            await client.withdraw(
                "w-1", 1001, "ETH", "0.5", "0xabc", from_="0xdef", need_transaction_sign=True
            )
        args = service.requests[0].args
        self.assertEqual(args["from"], "0xdef")
        sign_params = signer.withdraw_sign_params("w-1", 1001, "ETH", "0xabc", "0.5")
        self.assertTrue(
            signer.verify(sign_params, args["sign"], PublicKey.from_str(self.fixtures.OTHER_PUBLIC_KEY))
        )
        self.assertFalse(
            signer.verify(sign_params, args["sign"], PublicKey.from_str(self.fixtures.TEST_PUBLIC_KEY))
        )

    async def test_withdraw_signs_with_private_key_fallback(self):
        service = self.withdraw_service()
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            await client.withdraw(
                "w-1", 1001, "ETH", "0.5", "0xabc", outputs="[]", need_transaction_sign=True
            )
        sign_params = signer.withdraw_sign_params(
            "w-1", 1001, "ETH", "0xabc", "0.5", outputs="[]"
        )
        self.assertTrue(
            signer.verify(
                sign_params,
                service.requests[0].args["sign"],
                PublicKey.from_str(self.fixtures.TEST_PUBLIC_KEY),
            )
        )

    async def test_withdraw_validation(self):
        service = self.withdraw_service()
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            for missing in range(4):
                values = ["w-1", "ETH", "0.5", "0xabc"]
                values[missing] = ""
                request_id, symbol, amount, address_to = values
                with self.assertRaises(ValidationError):
                    await client.withdraw(request_id, 1001, symbol, amount, address_to)
        self.assertEqual(service.requests, [])

    async def test_withdraw_without_signing_key(self):
        service = self.withdraw_service()
        verify_only = RsaCryptoProvider(
            None, PublicKey.from_str(self.fixtures.OTHER_PUBLIC_KEY)
        )
        config = MpcConfig(
            app_id="test-app", domain="https://custody.test/", crypto_provider=verify_only
        )
        async with MpcClient(config, service.transport()) as client:
            with self.assertRaises(ValidationError) as context:
                await client.withdraw(
                    "w-1", 1001, "ETH", "0.5", "0xabc", need_transaction_sign=True
                )
        self.assertIsInstance(context.exception.__cause__, CryptoError)
        self.assertEqual(service.requests, [])

    async def test_signing_failure_is_not_sent(self):
        service = self.withdraw_service()
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            with mock.patch.object(
                signer, "canonicalize", side_effect=SigningError("broken")
            ):
                with self.assertRaises(SigningError):
                    await client.withdraw(
                        "w-1", 1001, "ETH", "0.5", "0xabc", need_transaction_sign=True
                    )
        self.assertEqual(service.requests, [])

    async def test_web3_transaction(self):
        service = self.MockCustodyService(
            {self.WEB3_PATH: {"code": 0, "data": {"id": "77", "request_id": "t-1"}}}
        )
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            record = await client.web3_transaction(
                "t-1",
                1001,
                "ETH",
                "0xcontract",
                "0",
                "30",
                "21000",
                "0x",
                MpcWeb3TransType.TRANSACTION,
                dapp_name="demo",
                need_transaction_sign=True,
            )
            with self.assertRaises(ValidationError):
                await client.web3_transaction(
                    "t-2", 1001, "ETH", "", "0", "30", "21000", "0x", "1"
                )
        self.assertEqual(record.id, 77)
        self.assertEqual(len(service.requests), 1)
        args = service.requests[0].args
        self.assertEqual(args["trans_type"], "1")
        self.assertEqual(args["dapp_name"], "demo")
        sign_params = signer.web3_sign_params("t-1", 1001, "ETH", "0xcontract", "0", "0x")
        self.assertTrue(
            signer.verify(sign_params, args["sign"], PublicKey.from_str(self.fixtures.TEST_PUBLIC_KEY))
        )

    async def test_lists_and_workspace(self):
        service = self.MockCustodyService(
            {
                "/api/mpc/billing/sync_deposit_list": {
                    "code": 0,
                    "data": [{"id": 9, "amount": "1.000000000000000001", "status": 2000}],
                },
                "/api/mpc/chain_height": {"code": 0, "data": {"height": 19000000}},
                "/api/mpc/wallet/open_coin": {
                    "code": 0,
                    "data": {
                        "open_main_chain": [{"symbol": "ETH", "enable_deposit": True}],
                        "support_main_chain": [{"symbol": "TRX"}],
                    },
                },
                "/api/mpc/auto_collect/symbol/set": {"code": 0, "data": None},
            }
        )
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            deposits = await client.request(MpcEndpoints.SYNC_DEPOSIT_LIST, max_id=0)
            height = await client.request(MpcEndpoints.CHAIN_HEIGHT, base_symbol="ETH")
            coins = await client.request(MpcEndpoints.SUPPORTED_COINS)
            unset = await client.request(
                MpcEndpoints.SET_AUTO_COLLECT_SYMBOL,
                symbol="USDTERC20",
                collect_min="10",
                fueling_limit="0.01",
            )
        self.assertEqual(deposits[0].amount, Decimal("1.000000000000000001"))
        self.assertEqual(height.block_height, 19000000)
        self.assertEqual(coins.open_main_chain[0].symbol, "ETH")
        self.assertEqual(coins.support_main_chain[0].symbol, "TRX")
        self.assertIsNone(unset)
        self.assertEqual(service.requests[3].args["fueling_limit"], "0.01")

    async def test_tron_delegate(self):
        service = self.MockCustodyService(
            {
                "/api/mpc/tron/delegate": {
                    "code": 0,
                    "data": {"trans_id": "t-9", "request_id": "d-1"},
                }
            }
        )
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            with self.assertRaises(ValidationError):
                await client.tron_delegate("d-1", "TFrom", "20001", buy_type=TronBuyType.SYSTEM)
            result = await client.tron_delegate(
                "d-1", "TFrom", "20001", buy_type=TronBuyType.MANUAL, energy_num=32000
            )
        self.assertEqual(result.trans_id, "t-9")
        self.assertEqual(service.requests[0].args["buy_type"], 1)
        self.assertEqual(service.requests[0].args["energy_num"], 32000)

    async def test_remote_error(self):
        service = self.MockCustodyService(
            {self.WITHDRAW_PATH: {"code": "120402", "msg": "insufficient balance"}}
        )
        async with MpcClient(service.mpc_config(), service.transport()) as client:
            with self.assertRaises(RemoteError) as context:
                await client.withdraw("w-1", 1001, "ETH", "0.5", "0xabc")
        self.assertEqual(context.exception.code, 120402)

    async def test_decrypt_notification(self):
        platform_key = PrivateKey.from_str(self.fixtures.OTHER_PRIVATE_KEY)
        client = MpcClient(self.MockCustodyService().mpc_config())
        notification = {
            "side": "deposit",
            "notify_type": "deposit",
            "sub_wallet_id": "1001",
            "amount": "0.25",
            "from": "0xdef",
            "kyt_status": 1,
        }
        data = client.decrypt_notification(
            platform_key.encrypt_private(json.dumps(notification))
        )
        self.assertEqual(data.sub_wallet_id, 1001)
        self.assertEqual(data.amount, Decimal("0.25"))
        self.assertEqual(data.from_, "0xdef")
        self.assertIs(data.kyt_status, True)

        with self.assertRaises(CryptoError):
            client.decrypt_notification("")
        with self.assertRaises(ValidationError):
            client.decrypt_notification(platform_key.encrypt_private('"text"'))
        await client.close()
