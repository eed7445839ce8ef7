"""
ChainUp custody SDK examples.

Runnable scripts against a real custody workspace, configured through
environment variables (see :mod:`examples.common`)::

    python -m examples.waas_example
    python -m examples.mpc_example

Both scripts only read data unless ``CHAINUP_EXAMPLE_WRITE`` is set, in which
case they also register a user, create a wallet and submit a withdrawal.
"""
