# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SDK identification for outgoing HTTP requests.

Every request carries a ``User-Agent`` naming this SDK and its installed
version, which lets the custody service tell Python SDK traffic apart in its
logs.

Examples:
    Building request headers::

        from chainup_sdk.metadata import Metadata

        headers = {Metadata.SDK_HEADER: Metadata.get_sdk_header_val()}
        # {'User-Agent': 'chainup-custody-python-sdk/0.1.0'}
"""

import importlib.metadata as metadata
import unittest
import unittest.mock

# Package name constant for metadata lookup
PACKAGE_NAME = "chainup-custody-sdk"

# Reported when running from a source checkout that was never installed
UNKNOWN_VERSION = "0.0.0"


class Metadata:
    """Static helpers describing this SDK to the remote service."""

    SDK_HEADER = "User-Agent"

    @staticmethod
    def version() -> str:
        try:
            return metadata.version(PACKAGE_NAME)
        except metadata.PackageNotFoundError:
            return UNKNOWN_VERSION

    @staticmethod
    def get_sdk_header_val() -> str:
        """
        Value of the SDK identification header.

        :return: ``chainup-custody-python-sdk/{version}``
        """
        return f"chainup-custody-python-sdk/{Metadata.version()}"


class Test(unittest.TestCase):
    def test_header_value(self):
        with unittest.mock.patch.object(metadata, "version", return_value="1.2.3"):
            self.assertEqual(
                Metadata.get_sdk_header_val(), "chainup-custody-python-sdk/1.2.3"
            )

    def test_uninstalled(self):
        with unittest.mock.patch.object(
            metadata, "version", side_effect=metadata.PackageNotFoundError(PACKAGE_NAME)
        ):
            self.assertEqual(Metadata.version(), UNKNOWN_VERSION)
