import json

import pytest

from ssv_keys.exceptions import (
    ArrayShapeError,
    InvalidPayloadContextError,
    SchemaError,
    UnsupportedVersionError,
)
from ssv_keys.key_shares import KeyShares
from ssv_keys.key_shares_item import KeySharesItem, SetOperators, SetShares
from ssv_keys.payload import decode_payload
from tests.helpers import OWNER_ADDRESS


@pytest.fixture
def key_shares(item):
    second = item.copy()
    second.apply_update(SetOperators(item.operators, owner_nonce=1))
    key_shares = KeyShares("v3")
    key_shares.add(item).add(second)
    return key_shares


def test_serialize(key_shares):
    doc = json.loads(key_shares.serialize())
    assert doc["version"] == "v3"
    assert len(doc["shares"]) == 2
    assert [s["data"]["ownerNonce"] for s in doc["shares"]] == [0, 1]
    assert doc["shares"][0]["data"]["operators"][0]["id"] == 1


def test_round_trip(key_shares):
    key_shares.rebuild_payloads(token_amount=10)
    loaded = KeyShares.deserialize(key_shares.serialize())
    assert loaded == key_shares
    assert loaded.serialize() == key_shares.serialize()


def test_add_checks(item, operators):
    with pytest.raises(UnsupportedVersionError):
        KeyShares("v2").add(item)
    with pytest.raises(TypeError):
        KeyShares("v3").add(item.to_dict())
    partial = KeySharesItem("v3")
    partial.apply_update(SetOperators(operators))
    with pytest.raises(SchemaError):
        KeyShares("v3").add(partial)


def test_unknown_version(key_shares):
    doc = json.loads(key_shares.serialize())
    doc["version"] = "v9"
    with pytest.raises(UnsupportedVersionError):
        KeyShares.deserialize(json.dumps(doc))


def test_bad_item_names_its_index(key_shares):
    doc = json.loads(key_shares.serialize())
    # The second validator lists two shares for three operators
    data = doc["shares"][1]["data"]
    data["operators"] = data["operators"][:3]
    data["shares"]["publicKeys"] = data["shares"]["publicKeys"][:2]
    data["shares"]["encryptedKeys"] = data["shares"]["encryptedKeys"][:2]
    with pytest.raises(ArrayShapeError) as exc:
        KeyShares.deserialize(json.dumps(doc))
    assert exc.value.item_index == 1
    assert str(exc.value).startswith("shares[1]: ")


@pytest.mark.parametrize("data", [b"not json", b"[]", b'{"version": "v3", "shares": {}}'])
def test_not_a_document(data):
    with pytest.raises(SchemaError):
        KeyShares.deserialize(data)


def test_empty_document():
    key_shares = KeyShares.deserialize(b'{"version": "v2", "shares": []}')
    assert len(key_shares) == 0
    assert key_shares.version == "v2"


def test_rebuild_payloads_with_stored_owner(key_shares):
    payloads = key_shares.rebuild_payloads()
    assert [p.readable.owner_nonce for p in payloads] == [0, 1]
    assert [item.payload for item in key_shares] == payloads


def test_rebuild_payloads_with_new_owner(key_shares):
    payloads = key_shares.rebuild_payloads(owner_address=OWNER_ADDRESS.lower(), owner_nonce=7, token_amount=3)
    assert [p.readable.owner_nonce for p in payloads] == [7, 8]
    assert [item.owner_nonce for item in key_shares] == [7, 8]
    for p in payloads:
        assert decode_payload(p)[-1] == 3
        assert p.readable.owner_address == OWNER_ADDRESS


def test_rebuild_payloads_without_context(operators, validator_public_key, shares):
    item = KeySharesItem("v2")
    item.apply_update(SetOperators(operators, validator_public_key))
    item.apply_update(SetShares(shares))
    key_shares = KeyShares("v2").add(item)
    with pytest.raises(InvalidPayloadContextError) as exc:
        key_shares.rebuild_payloads()
    assert exc.value.item_index == 0
    assert key_shares.rebuild_payloads(token_amount=1)[0].readable.token_amount == 1
