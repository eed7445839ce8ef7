# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
MPC walkthrough: workspace coins, wallets, and a signed withdrawal.

Examples:
    Read only::

        python -m examples.mpc_example

    Creating a wallet and withdrawing (needs CHAINUP_EXAMPLE_ADDRESS)::

        CHAINUP_EXAMPLE_WRITE=1 python -m examples.mpc_example
"""

import asyncio
import time

from chainup_sdk.enums import WalletShowStatus
from chainup_sdk.mpc import MpcClient, MpcEndpoints

from .common import SYMBOL, WITHDRAW_ADDRESS, WRITE, mpc_config


async def main():
    config = mpc_config()
    async with MpcClient(config) as client:
        supported = await client.request(MpcEndpoints.SUPPORTED_COINS)
        print("Open main chains:", [coin.symbol for coin in supported.open_main_chain])

        height = await client.request(MpcEndpoints.CHAIN_HEIGHT, base_symbol=SYMBOL)
        print(f"{SYMBOL} block height: {height.block_height}")

        details = await client.request(MpcEndpoints.COIN_LIST, symbol=SYMBOL)
        for coin in details:
            print(f"  {coin.symbol}: min withdraw {coin.min_withdraw}")

        if not WRITE:
            return

        wallet = await client.create_wallet(
            f"example-{int(time.time())}", WalletShowStatus.HIDDEN
        )
        print(f"Wallet {wallet.sub_wallet_id} created")

        address = await client.request(
            MpcEndpoints.CREATE_ADDRESS, sub_wallet_id=wallet.sub_wallet_id, symbol=SYMBOL
        )
        print(f"Deposit address: {address.address}")

        assets = await client.request(
            MpcEndpoints.WALLET_ASSETS, sub_wallet_id=wallet.sub_wallet_id, symbol=SYMBOL
        )
        print(f"Balance: {assets.normal_balance}")

        if WITHDRAW_ADDRESS:
            result = await client.withdraw(
                request_id=f"withdraw-{int(time.time() * 1000)}",
                sub_wallet_id=wallet.sub_wallet_id,
                symbol=SYMBOL,
                amount="0.001",
                address_to=WITHDRAW_ADDRESS,
                need_transaction_sign=bool(config.sign_private_key),
            )
            print(f"Withdrawal {result.withdraw_id} submitted")


if __name__ == "__main__":
    asyncio.run(main())
