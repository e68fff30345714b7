# RSA encryption of share private keys under operator public keys.
#
# Operator keys use the SSV registry format: base64 of a PEM encoded RSA
# public key. Shares are encrypted with PKCS#1 v1.5 padding, base64 encoded and
# wrapped as an ABI `string`, which is what the network contract stores.

import base64

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from .exceptions import InvalidEncryptedShareError, InvalidOperatorKeyError

PEM_HEADER = "-----BEGIN"


def load_operator_key(operator_id, operator_key):
    try:
        if isinstance(operator_key, str) and operator_key.lstrip().startswith(PEM_HEADER):
            pem = operator_key.encode("ascii")
        else:
            pem = base64.b64decode(operator_key, validate=True)
        key = serialization.load_pem_public_key(pem)
    except (TypeError, ValueError, UnsupportedAlgorithm):
        raise InvalidOperatorKeyError(operator_id)
    if not isinstance(key, rsa.RSAPublicKey):
        raise InvalidOperatorKeyError(operator_id)
    return key


def encrypt_share(public_key, plaintext):
    """Encrypt a share's hex private key; returns the 0x-hex ABI string."""
    ciphertext = public_key.encrypt(plaintext.encode("ascii"), padding.PKCS1v15())
    b64 = base64.b64encode(ciphertext).decode("ascii")
    return Web3.to_hex(encode(["string"], [b64]))


def decode_encrypted_key(encrypted_key, field="encryptedKeys"):
    """ABI-decode an encrypted key to its base64 ciphertext.

    This only checks the encoding; whether the ciphertext decrypts can only be
    known by the operator holding the private key.
    """
    if not isinstance(encrypted_key, str):
        raise InvalidEncryptedShareError(field, "expected a hex string, got {0}".format(
            type(encrypted_key).__name__))
    try:
        (b64,) = decode(["string"], Web3.to_bytes(hexstr=encrypted_key))
        base64.b64decode(b64, validate=True)
    except (ValueError, DecodingError, UnicodeDecodeError):
        raise InvalidEncryptedShareError(field, "{0} is not an ABI encoded string".format(
            _shorten(encrypted_key)))
    return b64


def decrypt_share(operator_private_key, encrypted_key):
    """Operator side: recover the hex share private key from an encrypted key."""
    if not isinstance(operator_private_key, rsa.RSAPrivateKey):
        operator_private_key = serialization.load_pem_private_key(operator_private_key, password=None)
    ciphertext = base64.b64decode(decode_encrypted_key(encrypted_key))
    return operator_private_key.decrypt(ciphertext, padding.PKCS1v15()).decode("ascii")


def _shorten(value):
    return value if len(value) <= 20 else value[:17] + "..."
