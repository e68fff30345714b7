# One validator's entry in a key-shares document.
#
# An item starts out empty (version only) and is filled in by typed updates:
#
#     item = KeySharesItem("v3")
#     item.apply_update(SetOperators(operators, validator_public_key, owner, nonce))
#     item.apply_update(SetShares(shares))
#     item.build_payload(PayloadContext(token_amount=...))
#
# Every update is validated against a staged copy of the item and only then
# committed, so a rejected update leaves the item as it was.

import json
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from . import payload as payload_mod
from .config import DEFAULT_VERSION
from .encryption import decode_encrypted_key, load_operator_key
from .exceptions import ArrayShapeError, SchemaError
from .models import Operator, Payload, Share
from .payload import PayloadContext
from .schema import check_version, has_owner_fields, parse_item, shape_error
from .validators import (
    hex_to_bytes,
    normalize_hex,
    validate_operator_ids,
    validate_owner_address,
    validate_owner_nonce,
    validate_public_key,
)

_OPERATORS = TypeAdapter(List[Operator])
_SHARES = TypeAdapter(List[Share])
_PAYLOAD = TypeAdapter(Payload)


@dataclass(frozen=True)
class SetOperators:
    operators: Any
    validator_public_key: Any = None
    owner_address: Any = None
    owner_nonce: Any = None


@dataclass(frozen=True)
class SetShares:
    shares: Any


@dataclass(frozen=True)
class SetPayload:
    payload: Any


@dataclass(frozen=True)
class _State:
    operators: Tuple[Operator, ...] = ()
    validator_public_key: Optional[str] = None
    # aligned with operators
    shares: Tuple[Share, ...] = ()
    payload: Optional[Payload] = None
    owner_address: Optional[str] = None
    owner_nonce: Optional[int] = None


class KeySharesItem:

    def __init__(self, version=DEFAULT_VERSION):
        self.version = check_version(version)
        self._state = _State()

    @property
    def operators(self):
        return list(self._state.operators)

    @property
    def operator_ids(self):
        return [o.id for o in self._state.operators]

    @property
    def validator_public_key(self):
        return self._state.validator_public_key

    @property
    def shares(self):
        return list(self._state.shares)

    @property
    def share_public_keys(self):
        return [s.public_key for s in self._state.shares]

    @property
    def payload(self):
        return self._state.payload

    @property
    def owner_address(self):
        return self._state.owner_address

    @property
    def owner_nonce(self):
        return self._state.owner_nonce

    @property
    def is_complete(self):
        s = self._state
        return bool(s.operators and s.validator_public_key and s.shares)

    def copy(self):
        item = KeySharesItem(self.version)
        item._state = self._state
        return item

    def __eq__(self, other):
        if not isinstance(other, KeySharesItem):
            return NotImplemented
        return self.version == other.version and self._state == other._state

    def __repr__(self):
        return "KeySharesItem(version={0!r}, public_key={1!r}, operator_ids={2})".format(
            self.version, self.validator_public_key, self.operator_ids)

    def apply_update(self, update):
        if isinstance(update, SetOperators):
            candidate = self._stage_operators(update)
        elif isinstance(update, SetShares):
            candidate = self._stage_shares(update)
        elif isinstance(update, SetPayload):
            candidate = self._stage_payload(update)
        else:
            raise TypeError("Unknown key shares update: {0!r}".format(update))
        self._check_consistency(candidate)
        self._state = candidate
        return self

    def build_payload(self, context=None):
        """Build the payload from the stored data and keep it on the item.

        Without a context the item's own owner address and nonce are used.
        """
        s = self._state
        if not self.is_complete:
            raise SchemaError("shares", "operators, public key and shares must be set before the payload")
        if context is None:
            context = PayloadContext(owner_address=s.owner_address, owner_nonce=s.owner_nonce)
        payload = payload_mod.build(s.validator_public_key, s.operators, s.shares, context)
        self.apply_update(SetPayload(payload))
        return self._state.payload

    # Staging. Each returns the candidate state or raises.

    def _stage_operators(self, update):
        operators = _coerce(_OPERATORS, update.operators, "operators")
        if not operators:
            raise ArrayShapeError("operators", "at least one operator is required")
        validate_operator_ids([o.id for o in operators])
        for o in operators:
            load_operator_key(o.id, o.public_key)
        changes = {"operators": tuple(operators)}
        if self._state.shares:
            # keep shares aligned with the new operator order
            by_id = {s.operator_id: s for s in self._state.shares}
            if set(by_id) == {o.id for o in operators}:
                changes["shares"] = tuple(by_id[o.id] for o in operators)

        if update.validator_public_key is not None:
            changes["validator_public_key"] = validate_public_key(update.validator_public_key)

        if update.owner_address is not None or update.owner_nonce is not None:
            if not has_owner_fields(self.version):
                raise SchemaError("ownerAddress", "owner data is not part of {0} key shares".format(
                    self.version))
            if update.owner_address is not None:
                changes["owner_address"] = validate_owner_address(update.owner_address)
            if update.owner_nonce is not None:
                changes["owner_nonce"] = validate_owner_nonce(update.owner_nonce)
        return replace(self._state, **changes)

    def _stage_shares(self, update):
        shares = _coerce(_SHARES, update.shares, "shares")
        operators = self._state.operators
        if not operators:
            raise ArrayShapeError("shares", "operators must be set before shares")
        if len(shares) != len(operators):
            raise ArrayShapeError("shares", "{0} shares for {1} operators".format(
                len(shares), len(operators)))
        validate_operator_ids([s.operator_id for s in shares])

        normalized = []
        for i, share in enumerate(shares):
            public_key = validate_public_key(share.public_key, "shares.{0}.publicKey".format(i))
            decode_encrypted_key(share.encrypted_key, "shares.{0}.encryptedKey".format(i))
            normalized.append(share.model_copy(update={
                "public_key": public_key,
                "encrypted_key": normalize_hex(share.encrypted_key),
            }))
        by_id = {s.operator_id: s for s in normalized}
        if set(by_id) != {o.id for o in operators}:
            raise ArrayShapeError("shares", "share operator ids {0} do not match operator ids {1}".format(
                sorted(by_id), sorted(o.id for o in operators)))
        return replace(self._state, shares=tuple(by_id[o.id] for o in operators))

    def _stage_payload(self, update):
        payload = _coerce(_PAYLOAD, update.payload, "payload")
        r = payload.readable
        n = len(r.operator_ids)
        if len(r.share_public_keys) != n or len(r.encrypted_shares) != n:
            raise ArrayShapeError("payload.readable", "{0} operator ids, {1} share public keys, {2} encrypted shares".format(
                n, len(r.share_public_keys), len(r.encrypted_shares)))
        validate_operator_ids(r.operator_ids)
        if r.operator_ids != sorted(r.operator_ids):
            raise ArrayShapeError("payload.readable.operatorIds", "operator ids must be in ascending order")

        validator_public_key = validate_public_key(r.validator_public_key, "payload.readable.validatorPublicKey")
        share_public_keys = [
            validate_public_key(pk, "payload.readable.sharePublicKeys.{0}".format(i))
            for i, pk in enumerate(r.share_public_keys)
        ]
        for i, enc in enumerate(r.encrypted_shares):
            decode_encrypted_key(enc, "payload.readable.encryptedShares.{0}".format(i))

        registration = r.owner_address is not None or r.owner_nonce is not None
        if registration and not has_owner_fields(self.version):
            raise SchemaError("payload.readable.ownerAddress", "owner data is not part of {0} key shares".format(
                self.version))
        context = PayloadContext(r.owner_address, r.owner_nonce, r.token_amount).validated()

        readable = r.model_copy(update={
            "validator_public_key": validator_public_key,
            "share_public_keys": share_public_keys,
            "encrypted_shares": [normalize_hex(enc) for enc in r.encrypted_shares],
            "owner_address": context.owner_address,
        })
        raw = payload_mod.encode(readable)
        try:
            matches = hex_to_bytes(payload.raw) == hex_to_bytes(raw)
        except ValueError:
            matches = False
        if not matches:
            raise SchemaError("payload.raw", "raw payload does not match the readable payload")
        return replace(self._state, payload=Payload(readable=readable, raw=raw))

    def _check_consistency(self, state):
        # Invariants across fields, checked on every candidate state
        if state.shares and [s.operator_id for s in state.shares] != [o.id for o in state.operators]:
            raise ArrayShapeError("shares", "shares {0} do not match operators {1}".format(
                [s.operator_id for s in state.shares], [o.id for o in state.operators]))
        if state.payload is None:
            return
        r = state.payload.readable
        if not (state.operators and state.validator_public_key and state.shares):
            raise SchemaError("payload", "operators, public key and shares must be set before the payload")
        if r.validator_public_key != state.validator_public_key:
            raise SchemaError("payload.readable.validatorPublicKey", "does not match the item public key")
        ordered = sorted(state.shares, key=lambda s: s.operator_id)
        if (r.operator_ids != [s.operator_id for s in ordered]
                or r.share_public_keys != [s.public_key for s in ordered]
                or r.encrypted_shares != [s.encrypted_key for s in ordered]):
            raise SchemaError("payload.readable", "payload shares do not match the item shares")
        if r.owner_address is not None and state.owner_address is not None:
            if (r.owner_address, r.owner_nonce) != (state.owner_address, state.owner_nonce):
                raise SchemaError("payload.readable.ownerAddress", "does not match the item owner")

    # Serialization

    def to_dict(self):
        s = self._state
        data = {}
        if has_owner_fields(self.version):
            data["ownerAddress"] = s.owner_address
            data["ownerNonce"] = s.owner_nonce
        data["publicKey"] = s.validator_public_key
        data["operators"] = [o.to_json_dict() for o in s.operators] if s.operators else None
        data["shares"] = {
            "publicKeys": [sh.public_key for sh in s.shares],
            "encryptedKeys": [sh.encrypted_key for sh in s.shares],
        } if s.shares else None
        return {
            "data": data,
            "payload": s.payload.to_json_dict() if s.payload else None,
        }

    def to_document_fragment(self):
        return json.dumps(dict(version=self.version, **self.to_dict()), indent=2).encode("utf-8")

    @classmethod
    def from_document_fragment(cls, fragment):
        try:
            obj = json.loads(fragment)
        except (TypeError, ValueError):
            raise SchemaError("", "key shares fragment is not a JSON document")
        if not isinstance(obj, dict):
            raise SchemaError("", "key shares fragment must be an object")
        fields = dict(obj)
        version = fields.pop("version", None)
        return cls.from_dict(version, fields)

    @classmethod
    def from_dict(cls, version, fragment):
        """Rebuild an item from its persisted form, validating everything."""
        parsed = parse_item(version, fragment)
        data = parsed.data
        item = cls(version)

        owner_address = getattr(data, "owner_address", None)
        owner_nonce = getattr(data, "owner_nonce", None)
        if data.operators is None:
            if data.public_key is not None or data.shares is not None or owner_address is not None:
                raise ArrayShapeError("data.operators", "operators are required with the rest of the data")
        else:
            item.apply_update(SetOperators(data.operators, data.public_key, owner_address, owner_nonce))

        if data.shares is not None:
            public_keys = data.shares.public_keys
            encrypted_keys = data.shares.encrypted_keys
            if not len(public_keys) == len(encrypted_keys) == len(data.operators):
                raise ArrayShapeError("data.shares", "{0} public keys and {1} encrypted keys for {2} operators".format(
                    len(public_keys), len(encrypted_keys), len(data.operators)))
            item.apply_update(SetShares([
                Share(operator_id=o.id, public_key=pk, encrypted_key=enc)
                for o, pk, enc in zip(data.operators, public_keys, encrypted_keys)
            ]))

        if parsed.payload is not None:
            item.apply_update(SetPayload(parsed.payload))
        return item


def _coerce(adapter, value, field):
    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        raise shape_error(e, field)
