# Decrypts an EIP-2335 validator keystore into raw BLS key material.
#
# The key material returned here is owned by the caller for the duration of a
# single build and must be cleared once the shares are derived:
#
#     with keystore.decrypt(data, password) as key:
#         shares = threshold.split(key.private_scalar, ids, keys)

import hashlib
import hmac
import logging
import unicodedata
from dataclasses import dataclass, field
from typing import Literal, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import BaseModel, ValidationError

from .bls import CURVE_ORDER, SECRET_LENGTH, privkey_to_pubkey
from .exceptions import InvalidKeystoreFormatError, InvalidPasswordError

logger = logging.getLogger(__name__)

CHECKSUM_LENGTH = 32
_AES_BLOCK_SIZE = 16


class _Module(BaseModel):
    function: str
    params: dict
    message: str


class _Crypto(BaseModel):
    kdf: _Module
    checksum: _Module
    cipher: _Module


class _Keystore(BaseModel):
    crypto: _Crypto
    version: Literal[4]
    pubkey: Optional[str] = None
    path: Optional[str] = None
    uuid: Optional[str] = None
    description: Optional[str] = None


class _ScryptParams(BaseModel):
    dklen: int
    n: int
    r: int
    p: int
    salt: str


class _Pbkdf2Params(BaseModel):
    dklen: int
    c: int
    prf: Literal["hmac-sha256"]
    salt: str


class _CipherParams(BaseModel):
    iv: str


@dataclass
class ValidatorKeyMaterial:
    secret: bytearray = field(repr=False)
    public_key: bytes

    @property
    def private_scalar(self):
        return int.from_bytes(self.secret, "big")

    def clear(self):
        for i in range(len(self.secret)):
            self.secret[i] = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.clear()
        return False


def decrypt(keystore_bytes, password):
    keystore = _parse(keystore_bytes)
    crypto = keystore.crypto

    if crypto.checksum.function != "sha256":
        raise InvalidKeystoreFormatError(
            "Unsupported checksum function: {0}".format(crypto.checksum.function))
    if crypto.cipher.function != "aes-128-ctr":
        raise InvalidKeystoreFormatError(
            "Unsupported cipher function: {0}".format(crypto.cipher.function))
    iv = _unhex(_params(_CipherParams, crypto.cipher, "crypto.cipher.params").iv, "crypto.cipher.params.iv")
    if len(iv) != 16:
        raise InvalidKeystoreFormatError("crypto.cipher.params.iv must be 16 bytes")
    cipher_message = _unhex(crypto.cipher.message, "crypto.cipher.message")
    if len(cipher_message) != SECRET_LENGTH:
        raise InvalidKeystoreFormatError(
            "crypto.cipher.message must be {0} bytes".format(SECRET_LENGTH))
    stored_checksum = _unhex(crypto.checksum.message, "crypto.checksum.message")
    if len(stored_checksum) != CHECKSUM_LENGTH:
        raise InvalidKeystoreFormatError(
            "crypto.checksum.message must be {0} bytes".format(CHECKSUM_LENGTH))
    expected_pubkey = _unhex(keystore.pubkey, "pubkey") if keystore.pubkey else None

    derived = _derive_key(crypto.kdf, normalize_password(password))
    checksum = hashlib.sha256(derived[16:32] + cipher_message).digest()
    if not hmac.compare_digest(checksum, stored_checksum):
        raise InvalidPasswordError()

    # Decrypt straight into the buffer the key material owns, so clear()
    # zeroes the only copy of the secret.
    decryptor = Cipher(algorithms.AES(derived[:16]), modes.CTR(iv)).decryptor()
    secret = bytearray(SECRET_LENGTH + _AES_BLOCK_SIZE - 1)
    written = decryptor.update_into(cipher_message, secret)
    decryptor.finalize()
    del secret[written:]

    key = ValidatorKeyMaterial(secret=secret, public_key=b"")
    if not 0 < key.private_scalar < CURVE_ORDER:
        key.clear()
        raise InvalidKeystoreFormatError("Keystore does not hold a BLS12-381 private key")

    key.public_key = privkey_to_pubkey(key.private_scalar)
    if expected_pubkey is not None and expected_pubkey != key.public_key:
        key.clear()
        raise InvalidKeystoreFormatError("Keystore pubkey does not match the decrypted private key")

    logger.debug("Decrypted keystore %s for validator 0x%s", keystore.uuid, key.public_key.hex())
    return key


def is_valid_password(keystore_bytes, password):
    try:
        key = decrypt(keystore_bytes, password)
    except InvalidPasswordError:
        return False
    key.clear()
    return True


def normalize_password(password):
    # EIP-2335: NFKD, then drop the C0, C1 and Delete control codes
    if isinstance(password, bytes):
        password = password.decode("utf-8")
    password = unicodedata.normalize("NFKD", password)
    return "".join(
        c for c in password
        if not (ord(c) < 0x20 or 0x7f <= ord(c) <= 0x9f)
    ).encode("utf-8")


def _parse(keystore_bytes):
    try:
        return _Keystore.model_validate_json(keystore_bytes)
    except ValidationError as e:
        raise InvalidKeystoreFormatError("Invalid keystore: {0}".format(_first_error(e)))


def _derive_key(kdf, password):
    if kdf.function == "scrypt":
        params = _params(_ScryptParams, kdf, "crypto.kdf.params")
        _check_dklen(params.dklen)
        try:
            fn = Scrypt(salt=_unhex(params.salt, "crypto.kdf.params.salt"),
                        length=params.dklen, n=params.n, r=params.r, p=params.p)
        except ValueError as e:
            raise InvalidKeystoreFormatError("Invalid scrypt parameters: {0}".format(e))
    elif kdf.function == "pbkdf2":
        params = _params(_Pbkdf2Params, kdf, "crypto.kdf.params")
        _check_dklen(params.dklen)
        if params.c < 1:
            raise InvalidKeystoreFormatError("crypto.kdf.params.c must be positive")
        fn = PBKDF2HMAC(algorithm=hashes.SHA256(), length=params.dklen,
                        salt=_unhex(params.salt, "crypto.kdf.params.salt"), iterations=params.c)
    else:
        raise InvalidKeystoreFormatError("Unsupported kdf function: {0}".format(kdf.function))
    return fn.derive(password)


def _check_dklen(dklen):
    if dklen < 32:
        raise InvalidKeystoreFormatError("crypto.kdf.params.dklen must be at least 32")


def _params(model, module, where):
    try:
        return model.model_validate(module.params)
    except ValidationError as e:
        raise InvalidKeystoreFormatError("Invalid {0}: {1}".format(where, _first_error(e)))


def _unhex(value, where):
    try:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError:
        raise InvalidKeystoreFormatError("{0} is not a hex string".format(where))


def _first_error(exc):
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err["loc"])
    return "{0}: {1}".format(loc, err["msg"]) if loc else err["msg"]
