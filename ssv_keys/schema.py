# Shapes of a single key-shares item as persisted, one schema per document
# version. These only check structure; the key material inside is validated by
# KeySharesItem when the parsed data is applied to it.

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from .config import SUPPORTED_VERSIONS
from .exceptions import ArrayShapeError, SchemaError, UnsupportedVersionError
from .models import Operator, Payload

# Locations whose failures are reported as array shape errors
ARRAY_FIELDS = {"operators", "shares", "publicKeys", "encryptedKeys",
                "operatorIds", "sharePublicKeys", "encryptedShares"}


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class SharesKeys(_Schema):
    public_keys: List[StrictStr] = Field(alias="publicKeys")
    encrypted_keys: List[StrictStr] = Field(alias="encryptedKeys")


class DataV2(_Schema):
    public_key: Optional[StrictStr] = Field(default=None, alias="publicKey")
    operators: Optional[List[Operator]] = None
    shares: Optional[SharesKeys] = None


class DataV3(DataV2):
    owner_address: Optional[StrictStr] = Field(default=None, alias="ownerAddress")
    owner_nonce: Optional[StrictInt] = Field(default=None, alias="ownerNonce")


class ItemV2(_Schema):
    version: Literal["v2"] = "v2"
    data: DataV2 = Field(default_factory=DataV2)
    payload: Optional[Payload] = None


class ItemV3(_Schema):
    version: Literal["v3"] = "v3"
    data: DataV3 = Field(default_factory=DataV3)
    payload: Optional[Payload] = None


SCHEMAS = {
    "v2": ItemV2,
    "v3": ItemV3,
}


def has_owner_fields(version):
    return "owner_address" in SCHEMAS[version].model_fields["data"].annotation.model_fields


def check_version(version):
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError(version, SUPPORTED_VERSIONS)
    return version


def parse_item(version, fragment):
    """Parse an item fragment with the schema registered for its version."""
    schema = SCHEMAS[check_version(version)]
    if not isinstance(fragment, dict):
        raise SchemaError("", "expected an object, got {0}".format(type(fragment).__name__))
    try:
        return schema.model_validate(dict(fragment, version=version))
    except ValidationError as e:
        raise shape_error(e)


def shape_error(exc, prefix=""):
    err = exc.errors()[0]
    parts = [str(part) for part in err["loc"]]
    field = ".".join(([prefix] if prefix else []) + parts)
    if prefix in ARRAY_FIELDS or any(part in ARRAY_FIELDS for part in parts):
        return ArrayShapeError(field, err["msg"])
    return SchemaError(field, err["msg"])
