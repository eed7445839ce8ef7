# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Typed records returned by the WaaS and MPC APIs.

The service is loose about JSON types: ids arrive as numbers or numeric
strings, flags as ``true``, ``1`` or ``"1"``, and amounts as strings. Each
record is a pydantic model whose :meth:`Record.from_dict` coerces values
according to the field annotations:

- ``int`` accepts integers and numeric strings;
- ``Decimal`` accepts strings and numbers; amounts sent as strings keep every
  digit;
- ``bool`` accepts booleans, ``0``/``1`` and ``"true"``/``"false"``;
- ``str`` accepts strings and numbers.

An empty string counts as missing for every field that is not a string.

Missing fields stay ``None``. Fields the SDK does not know are kept and
show up in ``extra``, so nothing the service sends is lost. Wire names that are
Python keywords (``from``) map to attributes with a trailing underscore.

Examples:
    Decoding a deposit::

        from chainup_sdk.models import MpcDepositRecord

        record = MpcDepositRecord.from_dict(
            {"id": "7", "amount": "0.10", "symbol": "ETH", "new_field": 1}
        )
        record.id      # 7
        record.amount  # Decimal('0.10')
        record.extra   # {'new_field': 1}
"""

from __future__ import annotations

import unittest
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

T = TypeVar("T", bound="Record")


class Record(BaseModel):
    """Base of every response record."""

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    @field_validator("*", mode="before")
    @classmethod
    def blank_as_missing(cls, value: Any, info: ValidationInfo) -> Any:
        # The service sends "" for unset numbers and flags.
        if value == "" and cls.model_fields[info.field_name].annotation != Optional[str]:
            return None
        return value

    @property
    def extra(self) -> Dict[str, Any]:
        """Fields the SDK does not declare, under their wire names."""
        return dict(self.model_extra or {})

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        """
        Build a record from a decoded JSON object.

        :raises pydantic.ValidationError: If ``data`` is not an object or a
            known field holds a value that cannot be coerced to its type.
        """
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form using wire names; ``None`` fields are left out."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


#
# WaaS records
#


class UserInfo(Record):
    uid: Optional[int] = None
    auth_level: Optional[int] = None
    nickname: Optional[str] = None
    real_name: Optional[str] = None
    invite_code: Optional[str] = None
    country: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None


class CoinInfo(Record):
    """A currency enabled for the merchant."""

    coin_net: Optional[str] = None
    symbol: Optional[str] = None
    icon: Optional[str] = None
    real_symbol: Optional[str] = None
    symbol_alias: Optional[str] = None
    base_symbol: Optional[str] = None
    merge_address_symbol: Optional[str] = None
    margin_symbol: Optional[str] = None
    decimals: Optional[int] = None
    contract_address: Optional[str] = None
    deposit_confirmation: Optional[int] = None
    withdraw_confirmation: Optional[int] = None
    support_memo: Optional[bool] = None
    support_token: Optional[bool] = None
    address_regex: Optional[str] = None
    address_tag_regex: Optional[str] = None
    min_deposit: Optional[Decimal] = None
    txid_link: Optional[str] = None
    explorer: Optional[str] = None
    address_link: Optional[str] = None


class UserAccountInfo(Record):
    uid: Optional[int] = None
    symbol: Optional[str] = None
    balance: Optional[Decimal] = None
    frozen: Optional[Decimal] = None
    id: Optional[int] = None


class UserAddressInfo(Record):
    id: Optional[int] = None
    uid: Optional[int] = None
    symbol: Optional[str] = None
    address: Optional[str] = None


class CompanyAccountInfo(Record):
    symbol: Optional[str] = None
    balance: Optional[Decimal] = None
    frozen: Optional[Decimal] = None


class WaasWithdrawResult(Record):
    id: Optional[int] = None
    request_id: Optional[str] = None


class WaasWithdrawRecord(Record):
    id: Optional[int] = None
    request_id: Optional[str] = None
    uid: Optional[int] = None
    email: Optional[str] = None
    symbol: Optional[str] = None
    base_symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    address_to: Optional[str] = None
    address_from: Optional[str] = None
    txid: Optional[str] = None
    txid_type: Optional[str] = None
    confirmations: Optional[int] = None
    contract_address: Optional[str] = None
    status: Optional[int] = None
    saas_status: Optional[int] = None
    company_status: Optional[int] = None
    withdraw_fee: Optional[Decimal] = None
    withdraw_fee_symbol: Optional[str] = None
    fee: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    real_fee: Optional[Decimal] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class WaasDepositRecord(Record):
    id: Optional[int] = None
    uid: Optional[int] = None
    email: Optional[str] = None
    symbol: Optional[str] = None
    base_symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    address_to: Optional[str] = None
    address_from: Optional[str] = None
    txid: Optional[str] = None
    txid_type: Optional[str] = None
    confirmations: Optional[int] = None
    contract_address: Optional[str] = None
    is_mining: Optional[int] = None
    status: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class MinerFeeRecord(Record):
    id: Optional[int] = None
    symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    txid: Optional[str] = None
    status: Optional[int] = None
    created_at: Optional[int] = None


class TransferRecord(Record):
    """A transfer between two merchant accounts."""

    id: Optional[int] = None
    request_id: Optional[str] = None
    receipt: Optional[str] = None
    symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    status: Optional[int] = None
    remark: Optional[str] = None
    created_at: Optional[int] = None


class NotifyData(Record):
    """Deposit or withdrawal notification pushed to the merchant callback."""

    side: Optional[str] = None
    id: Optional[int] = None
    uid: Optional[int] = None
    email: Optional[str] = None
    symbol: Optional[str] = None
    base_symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    address_to: Optional[str] = None
    address_from: Optional[str] = None
    txid: Optional[str] = None
    txid_type: Optional[str] = None
    confirmations: Optional[int] = None
    contract_address: Optional[str] = None
    status: Optional[int] = None
    saas_status: Optional[int] = None
    company_status: Optional[int] = None
    request_id: Optional[str] = None
    withdraw_fee: Optional[Decimal] = None
    withdraw_fee_symbol: Optional[str] = None
    fee: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    real_fee: Optional[Decimal] = None
    is_mining: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class WithdrawVerification(Record):
    """A withdrawal the service asks the merchant to confirm.

    The merchant echoes it back, encrypted, to approve the withdrawal, so
    ``amount`` keeps the exact string the service sent.
    """

    request_id: Optional[str] = None
    from_uid: Optional[int] = None
    to_address: Optional[str] = None
    amount: Optional[str] = None
    symbol: Optional[str] = None
    check_sum: Optional[str] = None


#
# MPC records
#


class WalletInfo(Record):
    sub_wallet_id: Optional[int] = None
    sub_wallet_name: Optional[str] = None
    app_show_status: Optional[int] = None
    created_at: Optional[str] = None


class WalletAddressInfo(Record):
    id: Optional[int] = None
    addr_type: Optional[int] = None
    address: Optional[str] = None
    memo: Optional[str] = None


class WalletAssetInfo(Record):
    normal_balance: Optional[Decimal] = None
    collecting_balance: Optional[Decimal] = None
    lock_balance: Optional[Decimal] = None


class AddressDetail(Record):
    """Which wallet owns an address."""

    addr_type: Optional[int] = None
    sub_wallet_id: Optional[int] = None
    merge_address_symbol: Optional[str] = None


class MpcWithdrawResult(Record):
    withdraw_id: Optional[int] = None


class MpcWithdrawRecord(Record):
    id: Optional[int] = None
    request_id: Optional[str] = None
    sub_wallet_id: Optional[int] = None
    symbol: Optional[str] = None
    base_symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    address_from: Optional[str] = None
    address_to: Optional[str] = None
    memo: Optional[str] = None
    txid: Optional[str] = None
    status: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    fee: Optional[Decimal] = None
    real_fee: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    confirmations: Optional[int] = None
    tx_height: Optional[int] = None
    contract_address: Optional[str] = None
    remark: Optional[str] = None
    withdraw_source: Optional[int] = None


class MpcDepositRecord(Record):
    id: Optional[int] = None
    sub_wallet_id: Optional[int] = None
    symbol: Optional[str] = None
    base_symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    address_to: Optional[str] = None
    address_from: Optional[str] = None
    memo: Optional[str] = None
    txid: Optional[str] = None
    confirmations: Optional[int] = None
    tx_height: Optional[int] = None
    contract_address: Optional[str] = None
    status: Optional[int] = None
    deposit_type: Optional[int] = None
    refund_amount: Optional[Decimal] = None
    kyt_status: Optional[str] = None
    remark: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class Web3TransRecord(Record):
    id: Optional[int] = None
    request_id: Optional[str] = None
    sub_wallet_id: Optional[int] = None
    main_chain_symbol: Optional[str] = None
    symbol: Optional[str] = None
    interactive_contract: Optional[str] = None
    amount: Optional[Decimal] = None
    gas_price: Optional[Decimal] = None
    gas_limit: Optional[Decimal] = None
    gas_used: Optional[Decimal] = None
    txid: Optional[str] = None
    address_from: Optional[str] = None
    address_to: Optional[str] = None
    fee: Optional[Decimal] = None
    real_fee: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    status: Optional[int] = None
    trans_type: Optional[int] = None
    trans_source: Optional[int] = None
    confirmations: Optional[int] = None
    tx_height: Optional[int] = None
    remark: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class AutoCollectResult(Record):
    fueling_sub_wallet_id: Optional[int] = None
    collect_sub_wallet_id: Optional[int] = None


class AutoCollectRecord(Record):
    id: Optional[int] = None
    sub_wallet_id: Optional[int] = None
    symbol: Optional[str] = None
    amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    real_fee: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    address_from: Optional[str] = None
    address_to: Optional[str] = None
    contract_address: Optional[str] = None
    txid: Optional[str] = None
    memo: Optional[str] = None
    remark: Optional[str] = None
    confirmations: Optional[int] = None
    tx_height: Optional[int] = None
    base_symbol: Optional[str] = None
    status: Optional[int] = None
    trans_type: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class TronDelegateResult(Record):
    trans_id: Optional[str] = None
    request_id: Optional[str] = None


class TronResourceRecord(Record):
    id: Optional[int] = None
    request_id: Optional[str] = None
    buy_type: Optional[int] = None
    resource_type: Optional[int] = None
    service_charge_rate: Optional[str] = None
    service_charge: Optional[str] = None
    energy_num: Optional[int] = None
    net_num: Optional[int] = None
    address_from: Optional[str] = None
    address_to: Optional[str] = None
    contract_address: Optional[str] = None
    energy_txid: Optional[str] = None
    net_txid: Optional[str] = None
    reclaim_energy_txid: Optional[str] = None
    reclaim_net_txid: Optional[str] = None
    energy_time: Optional[int] = None
    net_time: Optional[int] = None
    reclaim_energy_time: Optional[int] = None
    reclaim_net_time: Optional[int] = None
    energy_price: Optional[str] = None
    net_price: Optional[str] = None
    status: Optional[int] = None


class CoinDetails(Record):
    id: Optional[int] = None
    coin_net: Optional[str] = None
    symbol: Optional[str] = None
    real_symbol: Optional[str] = None
    symbol_alias: Optional[str] = None
    base_symbol: Optional[str] = None
    merge_address_symbol: Optional[str] = None
    decimals: Optional[int] = None
    contract_address: Optional[str] = None
    coin_type: Optional[int] = None
    support_memo: Optional[str] = None
    support_token: Optional[str] = None
    support_multi_addr: Optional[bool] = None
    support_acceleration: Optional[bool] = None
    if_open_chain: Optional[bool] = None
    icon: Optional[str] = None
    address_regex: Optional[str] = None
    address_tag_regex: Optional[str] = None
    address_link: Optional[str] = None
    txid_link: Optional[str] = None
    min_deposit: Optional[Decimal] = None
    min_withdraw: Optional[Decimal] = None
    deposit_confirmation: Optional[int] = None
    withdraw_confirmation: Optional[int] = None


class BlockHeightInfo(Record):
    block_height: Optional[int] = Field(default=None, alias="height")


class SupportedCoin(Record):
    coin_net: Optional[str] = None
    symbol: Optional[str] = None
    is_support_memo: Optional[int] = None
    chain_id: Optional[str] = None
    enable_withdraw: Optional[bool] = None
    enable_deposit: Optional[bool] = None
    support_acceleration: Optional[bool] = None
    need_payment: Optional[bool] = None
    if_open_chain: Optional[bool] = None
    real_symbol: Optional[str] = None
    symbol_alias: Optional[str] = None
    display_order: Optional[int] = None


class SupportedCoins(Record):
    """Main chains opened for the workspace and main chains available to open."""

    open_main_chain: List[SupportedCoin] = Field(default_factory=list)
    support_main_chain: List[SupportedCoin] = Field(default_factory=list)

    @field_validator("open_main_chain", "support_main_chain", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class MpcNotifyData(Record):
    """Deposit, withdrawal or Web3 notification pushed by the MPC service."""

    id: Optional[int] = None
    side: Optional[str] = None
    notify_type: Optional[str] = None
    request_id: Optional[str] = None
    sub_wallet_id: Optional[int] = None
    app_id: Optional[str] = None
    main_chain_symbol: Optional[str] = None
    base_symbol: Optional[str] = None
    symbol: Optional[str] = None
    contract_address: Optional[str] = None
    amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    real_fee: Optional[Decimal] = None
    fee_symbol: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    delegate_fee: Optional[Decimal] = None
    txid: Optional[str] = None
    tx_height: Optional[int] = None
    block_height: Optional[int] = None
    block_time: Optional[int] = None
    confirmations: Optional[int] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    memo: Optional[str] = None
    status: Optional[int] = None
    address_from: Optional[str] = None
    address_to: Optional[str] = None
    confirm: Optional[int] = None
    safe_confirm: Optional[int] = None
    is_mining: Optional[int] = None
    trans_type: Optional[int] = None
    withdraw_source: Optional[str] = None
    kyt_status: Optional[bool] = None
    interactive_contract: Optional[str] = None
    input_data: Optional[str] = None
    dapp_img: Optional[str] = None
    dapp_name: Optional[str] = None
    dapp_url: Optional[str] = None
    charset: Optional[str] = None
    sign: Optional[str] = None
    notify_time: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Test(unittest.TestCase):
    def test_coercion(self):
        record = MpcDepositRecord.from_dict(
            {
                "id": "7",
                "sub_wallet_id": 1001,
                "amount": "0.100000000000000001",
                "confirmations": 12.0,
                "status": "2000",
                "symbol": "ETH",
                "tx_height": None,
            }
        )
        self.assertEqual(record.id, 7)
        self.assertEqual(record.sub_wallet_id, 1001)
        self.assertEqual(record.amount, Decimal("0.100000000000000001"))
        self.assertEqual(record.confirmations, 12)
        self.assertEqual(record.status, 2000)
        self.assertIsNone(record.tx_height)
        self.assertIsNone(record.memo)
        self.assertEqual(record.extra, {})

    def test_bools(self):
        coin = CoinInfo.from_dict(
            {"support_memo": "1", "support_token": False, "min_deposit": 0.5}
        )
        self.assertIs(coin.support_memo, True)
        self.assertIs(coin.support_token, False)
        self.assertEqual(coin.min_deposit, Decimal("0.5"))
        self.assertIs(SupportedCoin.from_dict({"enable_deposit": "true"}).enable_deposit, True)
        self.assertIs(MpcNotifyData.from_dict({"kyt_status": 0}).kyt_status, False)

    def test_extra_and_aliases(self):
        transfer = TransferRecord.from_dict(
            {"from": "1001", "to": "1002", "amount": "5", "new_field": {"a": 1}}
        )
        self.assertEqual(transfer.from_, "1001")
        self.assertEqual(transfer.extra, {"new_field": {"a": 1}})
        self.assertEqual(
            transfer.to_dict(),
            {"from": "1001", "to": "1002", "amount": "5", "new_field": {"a": 1}},
        )
        self.assertEqual(BlockHeightInfo.from_dict({"height": "19000000"}).block_height, 19000000)

    def test_nested_lists(self):
        coins = SupportedCoins.from_dict(
            {
                "open_main_chain": [{"symbol": "ETH", "display_order": "1"}],
                "support_main_chain": None,
            }
        )
        self.assertEqual(coins.open_main_chain[0].symbol, "ETH")
        self.assertEqual(coins.open_main_chain[0].display_order, 1)
        self.assertEqual(coins.support_main_chain, [])

    def test_blank_and_numeric_strings(self):
        record = MpcWithdrawRecord.from_dict(
            {"id": "", "amount": "", "memo": "", "txid": 12345, "fee": 0}
        )
        self.assertIsNone(record.id)
        self.assertIsNone(record.amount)
        self.assertEqual(record.memo, "")
        self.assertEqual(record.txid, "12345")
        self.assertEqual(record.fee, Decimal("0"))
        self.assertEqual(CoinDetails.from_dict({"support_memo": 1}).support_memo, "1")
        self.assertIsNone(CoinInfo.from_dict({"support_token": ""}).support_token)

    def test_construct_by_attribute_name(self):
        transfer = TransferRecord(from_="1001", amount=Decimal("2"))
        self.assertEqual(transfer.to_dict(), {"from": "1001", "amount": "2"})
        self.assertEqual(BlockHeightInfo(block_height=5).to_dict(), {"height": 5})

    def test_invalid_values(self):
        with self.assertRaises(ValidationError):
            MpcDepositRecord.from_dict({"id": "seven"})
        with self.assertRaises(ValidationError):
            MpcDepositRecord.from_dict({"amount": "lots"})
        with self.assertRaises(ValidationError):
            CoinInfo.from_dict({"support_memo": "maybe"})
        with self.assertRaises(ValidationError):
            UserInfo.from_dict(["not", "an", "object"])  # type: ignore[arg-type]

    def test_to_dict(self):
        verification = WithdrawVerification.from_dict(
            {
                "request_id": "r-1",
                "from_uid": "1001",
                "to_address": "0xabc",
                "amount": "1.50",
                "symbol": "ETH",
            }
        )
        self.assertEqual(verification.from_uid, 1001)
        self.assertEqual(
            verification.to_dict(),
            {
                "request_id": "r-1",
                "from_uid": 1001,
                "to_address": "0xabc",
                "amount": "1.50",
                "symbol": "ETH",
            },
        )
        self.assertEqual(
            CompanyAccountInfo(symbol="BTC", balance=Decimal("1.0")).to_dict(),
            {"symbol": "BTC", "balance": "1.0"},
        )
