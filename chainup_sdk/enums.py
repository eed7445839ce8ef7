# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Constants shared by the WaaS and MPC custody APIs.

The service reports outcomes as numeric codes and encodes most record states as
small integers. The enums below give those values names so callers can compare
against ``ApiCode.BALANCE_INSUFFICIENT`` instead of ``120402``.

Examples:
    Interpreting a remote failure::

        from chainup_sdk.enums import ApiCode
        from chainup_sdk.errors import RemoteError

        try:
            await mpc_client.withdraw(...)
        except RemoteError as error:
            if error.api_code is ApiCode.BALANCE_INSUFFICIENT:
                ...

    Selecting a transfer query mode::

        from chainup_sdk.enums import QueryIdType

        await client.request(
            WaasEndpoints.TRANSFER_LIST,
            ids="r-1,r-2",
            ids_type=QueryIdType.REQUEST_ID.value,
        )
"""

from __future__ import annotations

import unittest
from enum import Enum, IntEnum
from typing import Any, Optional


class ApiCode(IntEnum):
    """Result codes returned in the ``code`` field of every response."""

    SUCCESS = 0

    # System
    SYSTEM_ERROR = 100001
    PARAM_INVALID = 100004
    SIGN_ERROR = 100005
    IP_FORBIDDEN = 100007
    MERCHANT_ID_INVALID = 100015
    MERCHANT_EXPIRED = 100016

    # Users
    USER_FROZEN = 110004
    MOBILE_REGISTERED = 110023
    WITHDRAW_ADDRESS_RISK = 110037
    WITHDRAW_ADDRESS_ERROR = 110055
    USER_NOT_EXIST = 110065
    AMOUNT_BELOW_MIN = 110078
    AMOUNT_EXCEED_MAX = 110087
    DUPLICATE_REQUEST = 110088
    MOBILE_INVALID = 110089
    REGISTER_FAILED = 110101
    PRECISION_EXCEEDED = 110161

    # Coins and balances
    COIN_NOT_SUPPORTED = 120202
    CONFIRM_FAILED = 120206
    BALANCE_INSUFFICIENT = 120402
    FEE_INSUFFICIENT = 120403
    AMOUNT_LESS_THAN_FEE = 120404

    # Risk control
    USER_RISK_FORBIDDEN = 900006

    # Transfers
    SELF_TRANSFER_FORBIDDEN = 3040006

    def is_success(self) -> bool:
        return self is ApiCode.SUCCESS

    @staticmethod
    def from_code(code: Any) -> Optional[ApiCode]:
        """Map a raw ``code`` value (int or numeric string) to a known member.

        :param code: The value of the ``code`` field.
        :return: The matching member, or None for codes this SDK does not know.
        """
        try:
            return ApiCode(int(code))
        except (TypeError, ValueError):
            return None


class MpcDepositStatus(IntEnum):
    CONFIRMING = 1900
    SUCCESS = 2000
    FAILED = 2400


class MpcWithdrawStatus(IntEnum):
    PENDING_AUDIT = 1000
    AUDIT_PASSED = 1100
    PROCESSING = 1200
    SUCCESS = 2000
    CANCELLED = 2200
    AUDIT_REJECTED = 2300
    FAILED = 2400


class MpcWeb3TransType(IntEnum):
    APPROVE = 0
    TRANSACTION = 1
    TRON_PERMISSION_APPROVE = 22
    TRON_APPROVED_TRANSFER = 23


class TronResourceType(IntEnum):
    BANDWIDTH_AND_ENERGY = 0
    ENERGY = 1


class TronServiceType(str, Enum):
    """Rental duration of delegated Tron resources."""

    TEN_MIN = "10010"
    ONE_HOUR = "20001"
    ONE_DAY = "30001"


class TronBuyType(IntEnum):
    SYSTEM = 0
    MANUAL = 1


class WalletShowStatus(IntEnum):
    VISIBLE = 1
    HIDDEN = 2


class AutoCollectStatus(IntEnum):
    DISABLED = 0
    ENABLED = 1


class QueryIdType(str, Enum):
    """Which identifier the ``ids`` parameter of a transfer query holds."""

    REQUEST_ID = "request_id"
    RECEIPT = "receipt"
    WAAS_ID = "id"


class CoinType(str, Enum):
    MAIN_COIN = "main"
    TOKEN = "token"


class TransactionSide(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


class Test(unittest.TestCase):
    def test_from_code(self):
        self.assertIs(ApiCode.from_code(0), ApiCode.SUCCESS)
        self.assertIs(ApiCode.from_code("120402"), ApiCode.BALANCE_INSUFFICIENT)
        self.assertIsNone(ApiCode.from_code(42))
        self.assertIsNone(ApiCode.from_code("not-a-code"))
        self.assertIsNone(ApiCode.from_code(None))

    def test_is_success(self):
        self.assertTrue(ApiCode.SUCCESS.is_success())
        self.assertFalse(ApiCode.SIGN_ERROR.is_success())

    def test_string_values(self):
        self.assertEqual(TronServiceType.ONE_HOUR.value, "20001")
        self.assertEqual(QueryIdType.WAAS_ID.value, "id")
        self.assertEqual(MpcWithdrawStatus(2300), MpcWithdrawStatus.AUDIT_REJECTED)
