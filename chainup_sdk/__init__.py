# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
ChainUp custody SDK: async Python clients for the WaaS and MPC custody APIs.

Every request is JSON encrypted with the merchant RSA private key; every reply
is decrypted with the platform RSA public key and decoded into a typed record.
MPC withdrawals and Web3 transactions can additionally carry an RSA signature
over a canonical form of their parameters.

Quick Start:
    Reading a WaaS balance::

        import asyncio
        from chainup_sdk.config import WaasConfig
        from chainup_sdk.waas import WaasClient, WaasEndpoints

        async def main():
            async with WaasClient(WaasConfig.from_env()) as client:
                account = await client.request(
                    WaasEndpoints.USER_ACCOUNT, uid=15036, symbol="ETH"
                )
                print(account.balance)

        asyncio.run(main())

    A signed MPC withdrawal::

        from chainup_sdk.config import MpcConfig
        from chainup_sdk.mpc import MpcClient

        async with MpcClient(MpcConfig.from_env()) as client:
            result = await client.withdraw(
                "withdraw-0001", 1000537, "ETH", "0.1", "0x...",
                need_transaction_sign=True,
            )

Module Organization:
    - **waas** / **mpc**: the two clients and their endpoint tables
    - **base_api**: the shared encrypt, send, decrypt and check pipeline
    - **config**: validated settings, from code, environment or JSON files
    - **rsa_keys**: key parsing and the block encryption schemes
    - **signer**: canonical parameter strings and transaction signatures
    - **crypto_provider**: the pluggable crypto interface (HSM, KMS)
    - **models**: typed response records
    - **errors** / **enums**: exception hierarchy and service constants

Configuration:
    Environment Variables:
    - **CHAINUP_APP_ID**, **CHAINUP_PRIVATE_KEY**, **CHAINUP_PUBLIC_KEY**
    - **CHAINUP_SIGN_PRIVATE_KEY** (MPC transaction signing)
    - **CHAINUP_HOST**, **CHAINUP_DEBUG**

Security Considerations:
    - **Private Keys**: Never logged; config reprs hide them
    - **Debug Mode**: Logs decrypted payloads, keep it off in production
"""
