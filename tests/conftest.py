"""
Shared pytest fixtures.

Operator RSA keys and the shares split from the test validator key are built
once per session; items are rebuilt per test since tests mutate them.
"""

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from web3 import Web3

from ssv_keys import threshold
from ssv_keys.bls import privkey_to_pubkey
from ssv_keys.key_shares_item import KeySharesItem, SetOperators, SetShares
from ssv_keys.models import Operator
from tests.helpers import OWNER_ADDRESS, PRIVATE_KEY, make_keystore, operator_public_key


@pytest.fixture(scope="session")
def operator_private_keys():
    """RSA keys for operator ids 1 to 7."""
    return {
        i: rsa.generate_private_key(public_exponent=65537, key_size=2048)
        for i in range(1, 8)
    }


@pytest.fixture(scope="session")
def operators(operator_private_keys):
    return [Operator(id=i, public_key=operator_public_key(operator_private_keys[i])) for i in (1, 2, 3, 4)]


@pytest.fixture(scope="session")
def validator_public_key():
    return Web3.to_hex(privkey_to_pubkey(PRIVATE_KEY))


@pytest.fixture(scope="session")
def shares(operators):
    return threshold.split(PRIVATE_KEY, [o.id for o in operators], [o.public_key for o in operators])


@pytest.fixture(scope="session")
def keystore_bytes():
    return make_keystore()


@pytest.fixture
def item(operators, validator_public_key, shares):
    item = KeySharesItem("v3")
    item.apply_update(SetOperators(operators, validator_public_key, OWNER_ADDRESS, 0))
    item.apply_update(SetShares(shares))
    return item
