# Builds the ABI encoded payload that registers a validator's shares with the
# network contract. Only public data goes in: the validator public key, the
# operator ids and the (already encrypted) shares.
#
# Encoded as ABI params:
#
#     validatorPublicKey   bytes
#     operatorIds          uint64[]   strictly ascending
#     sharePublicKeys      bytes[]    aligned with operatorIds
#     encryptedShares      bytes[]    aligned with operatorIds
#     ownerAddress         address    registration
#     ownerNonce           uint64     registration
#     tokenAmount          uint256    deposit

from dataclasses import dataclass
from typing import List, Optional

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from pydantic import TypeAdapter, ValidationError
from web3 import Web3

from .encryption import decode_encrypted_key
from .exceptions import (
    ArrayShapeError,
    InvalidOwnerAddressError,
    InvalidPayloadContextError,
    SchemaError,
)
from .models import Operator, Payload, PayloadReadable, Share
from .schema import shape_error
from .validators import (
    hex_to_bytes,
    normalize_hex,
    validate_operator_ids,
    validate_owner_address,
    validate_owner_nonce,
    validate_public_key,
)

BASE_TYPES = ["bytes", "uint64[]", "bytes[]", "bytes[]"]
REGISTRATION_TYPES = ["address", "uint64"]
DEPOSIT_TYPES = ["uint256"]

UINT256_MAX = 2 ** 256 - 1

_SHARES = TypeAdapter(List[Share])


@dataclass(frozen=True)
class PayloadContext:
    owner_address: Optional[str] = None
    owner_nonce: Optional[int] = None
    token_amount: Optional[int] = None

    @property
    def is_registration(self):
        return self.owner_address is not None

    @property
    def is_deposit(self):
        return self.token_amount is not None

    def abi_types(self):
        return BASE_TYPES + context_types(self.is_registration, self.is_deposit)

    def validated(self):
        """Return a normalized copy, or raise naming the bad context field."""
        if (self.owner_address is None) != (self.owner_nonce is None):
            raise InvalidPayloadContextError(
                "context", "owner address and owner nonce must be given together")
        if not self.is_registration and not self.is_deposit:
            raise InvalidPayloadContextError(
                "context", "either owner address and nonce or token amount is required")
        owner_address = owner_nonce = None
        if self.is_registration:
            try:
                owner_address = validate_owner_address(self.owner_address, "context.ownerAddress")
                owner_nonce = validate_owner_nonce(self.owner_nonce, "context.ownerNonce")
            except (InvalidOwnerAddressError, SchemaError) as e:
                raise InvalidPayloadContextError(e.field, e.detail)
        if self.is_deposit and (type(self.token_amount) is not int
                                or not 0 <= self.token_amount <= UINT256_MAX):
            raise InvalidPayloadContextError(
                "context.tokenAmount", "{0!r} is not a uint256".format(self.token_amount))
        return PayloadContext(owner_address, owner_nonce, self.token_amount)


def context_types(registration, deposit):
    return (REGISTRATION_TYPES if registration else []) + (DEPOSIT_TYPES if deposit else [])


def build(validator_public_key, operators, shares, context):
    context = context.validated()
    validator_public_key = validate_public_key(validator_public_key, "validatorPublicKey")
    ids = validate_operator_ids([_operator_id(o) for o in operators])
    shares = _coerce_shares(shares)
    validate_operator_ids([s.operator_id for s in shares])
    by_id = {s.operator_id: s for s in shares}
    if set(ids) != set(by_id):
        raise ArrayShapeError("shares", "share operator ids {0} do not match operator ids {1}".format(
            sorted(by_id), sorted(ids)))

    # The contract expects operators in ascending order, shares following them
    operator_ids = sorted(ids)
    ordered = [by_id[i] for i in operator_ids]

    readable = PayloadReadable(
        validator_public_key=validator_public_key,
        operator_ids=operator_ids,
        share_public_keys=[s.public_key for s in ordered],
        encrypted_shares=[s.encrypted_key for s in ordered],
        owner_address=context.owner_address,
        owner_nonce=context.owner_nonce,
        token_amount=context.token_amount,
    )
    return Payload(readable=readable, raw=encode(readable))


def encode(readable):
    values = [
        hex_to_bytes(readable.validator_public_key),
        readable.operator_ids,
        [hex_to_bytes(pk) for pk in readable.share_public_keys],
        [hex_to_bytes(enc) for enc in readable.encrypted_shares],
    ]
    registration = readable.owner_address is not None
    deposit = readable.token_amount is not None
    if registration:
        values += [readable.owner_address, readable.owner_nonce]
    if deposit:
        values.append(readable.token_amount)
    return Web3.to_hex(abi_encode(BASE_TYPES + context_types(registration, deposit), values))


def decode(raw, registration=False, deposit=True):
    """Decode a raw payload into a list of its ABI params."""
    types = BASE_TYPES + context_types(registration, deposit)
    return [list(v) if isinstance(v, tuple) else v
            for v in abi_decode(types, hex_to_bytes(raw))]


def decode_payload(payload):
    readable = payload.readable
    return decode(payload.raw, registration=readable.owner_address is not None,
                  deposit=readable.token_amount is not None)


def _operator_id(operator):
    return operator.id if isinstance(operator, Operator) else operator


def _coerce_shares(shares):
    try:
        shares = _SHARES.validate_python(shares)
    except ValidationError as e:
        raise shape_error(e, "shares")
    normalized = []
    for i, share in enumerate(shares):
        public_key = validate_public_key(share.public_key, "shares.{0}.publicKey".format(i))
        decode_encrypted_key(share.encrypted_key, "shares.{0}.encryptedKey".format(i))
        normalized.append(share.model_copy(update={
            "public_key": public_key,
            "encrypted_key": normalize_hex(share.encrypted_key),
        }))
    return normalized
