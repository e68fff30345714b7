# Turns a validator private key into threshold keys, one per operator, and
# encrypts each under that operator's RSA key. This is NOT a DKG: the full key
# exists (briefly) on the machine doing the split. If the key was compromised
# before the split happened, splitting it does not help.

import logging
import secrets

from web3 import Web3

from .bls import CURVE_ORDER, SECRET_LENGTH, eval_poly, privkey_to_pubkey, reconstruct_pubkey
from .encryption import encrypt_share, load_operator_key
from .exceptions import InvalidOperatorIdError, InvalidPrivateKeyError, OperatorCountMismatchError
from .models import Share
from .validators import hex_to_bytes, validate_operator_ids

logger = logging.getLogger(__name__)


def fault_tolerance(operator_count):
    # N = 3f + 1
    return (operator_count - 1) // 3


def quorum(operator_count):
    # 2f + 1 when N = 3f + 1
    return operator_count - fault_tolerance(operator_count)


def split(private_scalar, operator_ids, operator_keys):
    operator_ids = list(operator_ids)
    operator_keys = list(operator_keys)
    if len(operator_ids) != len(operator_keys):
        raise OperatorCountMismatchError(operator_ids, operator_keys)
    if not operator_ids:
        raise InvalidOperatorIdError(None, "At least one operator is required")
    validate_operator_ids(operator_ids)
    rsa_keys = [load_operator_key(i, k) for i, k in zip(operator_ids, operator_keys)]
    if type(private_scalar) is not int or not 0 < private_scalar < CURVE_ORDER:
        raise InvalidPrivateKeyError()

    threshold = quorum(len(operator_ids))
    logger.debug("Splitting key for %d operators, quorum %d", len(operator_ids), threshold)

    # The operator id is the evaluation point of its share. A zero share has no
    # public key, so draw again in the (negligible) case one comes out zero.
    while True:
        coefs = [private_scalar] + [secrets.randbelow(CURVE_ORDER) for i in range(threshold - 1)]
        privkeys = [eval_poly(x, coefs) for x in operator_ids]
        if all(privkeys):
            break

    shares = []
    for operator_id, rsa_key, privkey in zip(operator_ids, rsa_keys, privkeys):
        shares.append(Share(
            operator_id=operator_id,
            public_key=Web3.to_hex(privkey_to_pubkey(privkey)),
            encrypted_key=encrypt_share(rsa_key, contribution_hex(privkey)),
        ))
    del coefs, privkeys
    return shares


def contribution_hex(privkey):
    """Plaintext an operator recovers when decrypting its share."""
    return Web3.to_hex(privkey.to_bytes(SECRET_LENGTH, byteorder="big"))


def verify_shares(validator_public_key, shares):
    """Check that share public keys interpolate to the validator public key.

    Uses public data only: every share must lie on the same degree t-1
    polynomial whose value at zero is the validator key.
    """
    shares = sorted(shares, key=lambda s: s.operator_id)
    if not shares:
        return False
    expected = hex_to_bytes(validator_public_key)
    pubkeys = {s.operator_id: hex_to_bytes(s.public_key) for s in shares}
    ids = [s.operator_id for s in shares]
    base = ids[:quorum(len(ids)) - 1]
    for x in ids[len(base):]:
        subset = {i: pubkeys[i] for i in base + [x]}
        if reconstruct_pubkey(subset) != expected:
            return False
    return True
