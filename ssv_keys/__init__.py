# Splits a validator key into encrypted SSV operator shares and builds the
# key-shares document that registers them.

__version__ = "0.3.0"

from .config import DEFAULT_VERSION, SUPPORTED_VERSIONS
from .exceptions import (
    ArrayShapeError,
    InvalidEncryptedShareError,
    InvalidKeystoreFormatError,
    InvalidOperatorIdError,
    InvalidOperatorKeyError,
    InvalidOwnerAddressError,
    InvalidPasswordError,
    InvalidPayloadContextError,
    InvalidPrivateKeyError,
    InvalidPublicKeyError,
    KeySharesError,
    OperatorCountMismatchError,
    OrderingError,
    SchemaError,
    SSVKeysError,
    UnsupportedVersionError,
)
from .models import Operator, Payload, PayloadReadable, Share
from .keystore import ValidatorKeyMaterial, decrypt
from .threshold import split, verify_shares
from .encryption import decrypt_share
from .payload import PayloadContext, build as build_payload
from .key_shares_item import KeySharesItem, SetOperators, SetPayload, SetShares
from .key_shares import KeyShares
from .builder import KeystoreJob, build_item, build_key_shares
