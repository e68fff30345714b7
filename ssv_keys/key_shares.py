# The key-shares document: an ordered set of key-shares items sharing one
# schema version. This is the file that gets written to disk and later read
# back; on load every item is validated again from scratch.

import json
import logging

from .config import DEFAULT_VERSION
from .exceptions import SchemaError, SSVKeysError, UnsupportedVersionError
from .key_shares_item import KeySharesItem, SetOperators, SetShares
from .payload import PayloadContext
from .schema import check_version

logger = logging.getLogger(__name__)


class KeyShares:

    def __init__(self, version=DEFAULT_VERSION):
        self.version = check_version(version)
        self._items = []

    @property
    def items(self):
        return list(self._items)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __eq__(self, other):
        if not isinstance(other, KeyShares):
            return NotImplemented
        return self.version == other.version and self._items == other._items

    def add(self, item):
        if not isinstance(item, KeySharesItem):
            raise TypeError("Expected a KeySharesItem, got {0}".format(type(item).__name__))
        if item.version != self.version:
            raise UnsupportedVersionError(item.version, [self.version])
        if not item.is_complete:
            raise SchemaError("data", "only items with operators, public key and shares can be added")
        self._items.append(item)
        return self

    def serialize(self):
        doc = {
            "version": self.version,
            "shares": [item.to_dict() for item in self._items],
        }
        return json.dumps(doc, indent=2).encode("utf-8")

    @classmethod
    def deserialize(cls, data):
        try:
            doc = json.loads(data)
        except (TypeError, ValueError):
            raise SchemaError("", "key shares file is not a JSON document")
        if not isinstance(doc, dict):
            raise SchemaError("", "key shares file must be an object")
        key_shares = cls(doc.get("version"))
        fragments = doc.get("shares")
        if not isinstance(fragments, list):
            raise SchemaError("shares", "expected a list of key shares items")

        # All or nothing: the first bad item fails the whole document
        for index, fragment in enumerate(fragments):
            try:
                item = KeySharesItem.from_dict(key_shares.version, fragment)
                key_shares.add(item)
            except SSVKeysError as e:
                raise e.at_item(index)
        logger.debug("Loaded %d key shares items (%s)", len(key_shares), key_shares.version)
        return key_shares

    def rebuild_payloads(self, owner_address=None, owner_nonce=None, token_amount=None):
        """Rebuild every item's payload from its stored shares.

        Items take owner_nonce + index when a starting nonce is given, and
        otherwise keep their own owner address and nonce.
        """
        rebuilt = []
        for index, item in enumerate(self._items):
            context = PayloadContext(
                owner_address=owner_address if owner_address is not None else item.owner_address,
                owner_nonce=owner_nonce + index if owner_nonce is not None else item.owner_nonce,
                token_amount=token_amount,
            )
            try:
                item = _rebuild(item, context)
            except SSVKeysError as e:
                raise e.at_item(index)
            rebuilt.append(item)
        self._items = rebuilt
        return [item.payload for item in rebuilt]


def _rebuild(item, context):
    # A new owner or nonce replaces the item's own, so the item is rebuilt
    # from its stored data rather than patched.
    rebuilt = KeySharesItem(item.version)
    owner_address = owner_nonce = None
    if context.owner_address is not None:
        owner_address, owner_nonce = context.owner_address, context.owner_nonce
    rebuilt.apply_update(SetOperators(item.operators, item.validator_public_key, owner_address, owner_nonce))
    rebuilt.apply_update(SetShares(item.shares))
    rebuilt.build_payload(context)
    return rebuilt
