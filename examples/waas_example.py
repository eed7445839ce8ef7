# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
WaaS walkthrough: currencies, a user account, and billing history.

Examples:
    Read only::

        python -m examples.waas_example

    Registering a user and withdrawing (needs CHAINUP_EXAMPLE_ADDRESS)::

        CHAINUP_EXAMPLE_WRITE=1 python -m examples.waas_example
"""

import asyncio
import time

from chainup_sdk.enums import ApiCode
from chainup_sdk.errors import RemoteError
from chainup_sdk.waas import WaasClient, WaasEndpoints

from .common import SYMBOL, WITHDRAW_ADDRESS, WRITE, waas_config


async def main():
    async with WaasClient(waas_config()) as client:
        coins = await client.request(WaasEndpoints.COIN_LIST)
        print(f"{len(coins)} currencies enabled")
        for coin in coins[:5]:
            print(f"  {coin.symbol} on {coin.base_symbol} ({coin.decimals} decimals)")

        company = await client.request(WaasEndpoints.COMPANY_ACCOUNT, symbol=SYMBOL)
        print(f"Company {SYMBOL} balance: {company.balance}")

        deposits = await client.request(WaasEndpoints.SYNC_DEPOSIT_LIST, max_id=0)
        print(f"{len(deposits)} deposits since the beginning")

        if not WRITE:
            return

        mobile = "138" + str(int(time.time()))[-8:]
        try:
            user = await client.request(
                WaasEndpoints.REGISTER_MOBILE_USER, country="86", mobile=mobile
            )
        except RemoteError as error:
            if error.api_code is not ApiCode.MOBILE_REGISTERED:
                raise
            user = await client.request(
                WaasEndpoints.GET_MOBILE_USER, country="86", mobile=mobile
            )
        print(f"User uid: {user.uid}")

        address = await client.request(
            WaasEndpoints.DEPOSIT_ADDRESS, uid=user.uid, symbol=SYMBOL
        )
        print(f"Deposit address: {address.address}")

        if WITHDRAW_ADDRESS:
            request_id = f"withdraw-{int(time.time() * 1000)}"
            result = await client.request(
                WaasEndpoints.WITHDRAW,
                request_id=request_id,
                from_uid=user.uid,
                to_address=WITHDRAW_ADDRESS,
                amount="0.001",
                symbol=SYMBOL,
            )
            print(f"Withdrawal {result.id} submitted")
            records = await client.request(WaasEndpoints.WITHDRAW_LIST, ids=[request_id])
            for record in records:
                print(f"  {record.request_id}: status {record.status}")


if __name__ == "__main__":
    asyncio.run(main())
