import typing

from behave import use_step_matcher, when

from chainup_sdk import fixtures, signer

# Use regular expressions
use_step_matcher("re")


@when("I canonicalize the params")
def when_canonicalize(context: typing.Any):
    context.output = signer.canonicalize(context.params)


@when("I digest the params")
def when_digest(context: typing.Any):
    context.output = signer.digest(signer.canonicalize(context.params)).hex()


@when("I sign the params")
def when_sign(context: typing.Any):
    context.output = signer.sign(context.params, context.private_key)


@when("I verify the reference signature")
def when_verify(context: typing.Any):
    context.output = signer.verify(
        context.params, fixtures.REFERENCE_SIGNATURE, context.public_key
    )


@when(r"I encrypt string (?P<plaintext>\S+) with the private key")
def when_encrypt_private(context: typing.Any, plaintext: str):
    context.output = context.private_key.encrypt_private(plaintext)


@when("I decrypt the reference ciphertext with the public key")
def when_decrypt_public(context: typing.Any):
    context.output = context.public_key.decrypt_public(
        fixtures.REFERENCE_PRIVATE_CIPHERTEXT
    )
