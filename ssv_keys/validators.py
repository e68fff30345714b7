# Field validators shared by the splitter, the payload assembler and the
# key-shares item. Each raises the error kind that names the offending field.

from collections import Counter

from web3 import Web3

from .bls import is_valid_pubkey
from .exceptions import (
    InvalidOperatorIdError,
    InvalidOwnerAddressError,
    InvalidPublicKeyError,
    OrderingError,
    SchemaError,
)

UINT64_MAX = 2 ** 64 - 1


def hex_to_bytes(value):
    if not isinstance(value, str):
        raise TypeError("expected a hex string, got {0}".format(type(value).__name__))
    return Web3.to_bytes(hexstr=value)


def validate_public_key(value, field="publicKey"):
    """Return the 0x-hex form of a BLS public key, if it is a valid G1 point."""
    try:
        pubkey = hex_to_bytes(value)
    except (TypeError, ValueError):
        raise InvalidPublicKeyError(field, "{0!r} is not a hex string".format(value))
    if not is_valid_pubkey(pubkey):
        raise InvalidPublicKeyError(field, "{0} is not a valid BLS public key".format(value))
    return Web3.to_hex(pubkey)


def validate_operator_ids(operator_ids):
    for operator_id in operator_ids:
        # bool is an int but never a valid id
        if type(operator_id) is not int or operator_id <= 0:
            raise InvalidOperatorIdError(operator_id)
    duplicates = [i for i, count in Counter(operator_ids).items() if count > 1]
    if duplicates:
        raise OrderingError(duplicates)
    return list(operator_ids)


def validate_owner_address(value, field="ownerAddress"):
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidOwnerAddressError(field, "{0!r} is not an address".format(value))
    return Web3.to_checksum_address(value)


def validate_owner_nonce(value, field="ownerNonce"):
    if type(value) is not int or not 0 <= value <= UINT64_MAX:
        raise SchemaError(field, "{0!r} is not a uint64".format(value))
    return value


def normalize_hex(value):
    return Web3.to_hex(hex_to_bytes(value))
