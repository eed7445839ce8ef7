# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Common configuration for the custody SDK examples.

Environment Variables:
    CHAINUP_APP_ID: Merchant application id
    CHAINUP_PRIVATE_KEY: Merchant RSA private key (PEM or bare Base64)
    CHAINUP_PUBLIC_KEY: Platform RSA public key
    CHAINUP_SIGN_PRIVATE_KEY: MPC transaction signing key (optional)
    CHAINUP_HOST: API host, defaults to https://openapi.chainup.com/
    CHAINUP_DEBUG: Log decrypted payloads when set to true
    CHAINUP_EXAMPLE_WRITE: Also run the calls that change state
    CHAINUP_EXAMPLE_SYMBOL: Currency used by the examples, defaults to ETH
    CHAINUP_EXAMPLE_ADDRESS: Withdrawal target address
"""

import logging
import os

from chainup_sdk.config import TRUE_VALUES, MpcConfig, WaasConfig

SYMBOL = os.getenv("CHAINUP_EXAMPLE_SYMBOL", "ETH")

WITHDRAW_ADDRESS = os.getenv("CHAINUP_EXAMPLE_ADDRESS", "")

WRITE = os.getenv("CHAINUP_EXAMPLE_WRITE", "").lower() in TRUE_VALUES


def waas_config() -> WaasConfig:
    config = WaasConfig.from_env()
    if config.debug:
        logging.basicConfig(level=logging.DEBUG)
    return config


def mpc_config() -> MpcConfig:
    config = MpcConfig.from_env()
    if config.debug:
        logging.basicConfig(level=logging.DEBUG)
    return config
