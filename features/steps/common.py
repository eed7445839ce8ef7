import json
import typing

from behave import given, then, use_step_matcher

from chainup_sdk import fixtures
from chainup_sdk.rsa_keys import PrivateKey, PublicKey

# Use regular expressions
use_step_matcher("re")


@given(r"params (?P<input_value>\{.*\})")
def given_params(context: typing.Any, input_value: str):
    context.params = json.loads(input_value)


@given("the test key pair")
def given_test_key_pair(context: typing.Any):
    context.private_key = PrivateKey.from_str(fixtures.TEST_PRIVATE_KEY)
    context.public_key = PublicKey.from_str(fixtures.TEST_PUBLIC_KEY)


@then(r"the result should be (?P<expected_type>string|hex|bool) (?P<expected_value>.+)")
def then_result(context: typing.Any, expected_type: str, expected_value: str):
    expected_val: typing.Any = expected_value
    if expected_type == "bool":
        expected_val = parse_bool(expected_value)
    assert context.output == expected_val, (
        "Expected " + str(expected_val) + " but got " + str(context.output)
    )


@then(r"the result should be the reference (?P<name>signature|ciphertext)")
def then_reference(context: typing.Any, name: str):
    if name == "signature":
        expected_val = fixtures.REFERENCE_SIGNATURE
    else:
        expected_val = fixtures.REFERENCE_PRIVATE_CIPHERTEXT
    assert context.output == expected_val, (
        "Expected " + expected_val + " but got " + str(context.output)
    )


def parse_bool(input_value: str) -> bool:
    if input_value == "true":
        return True
    elif input_value == "false":
        return False
    else:
        raise Exception("Unrecognized bool value")
