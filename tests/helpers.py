"""Builders for test keystores and operator keys."""

import base64
import hashlib
import json
import os
import uuid

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from web3 import Web3

from ssv_keys.bls import privkey_to_pubkey
from ssv_keys.keystore import normalize_password

PRIVATE_KEY = 0x19d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f
PASSWORD = "testtest"
OWNER_ADDRESS = Web3.to_checksum_address("0x81592c3de184a3e2c0dcb5a261bc107bfa91f494")


def make_keystore(secret=PRIVATE_KEY, password=PASSWORD, kdf="pbkdf2", with_pubkey=True):
    """EIP-2335 keystore with cheap KDF parameters."""
    salt = os.urandom(32)
    iv = os.urandom(16)
    if kdf == "scrypt":
        params = {"dklen": 32, "n": 16, "r": 8, "p": 1, "salt": salt.hex()}
        derive = Scrypt(salt=salt, length=32, n=16, r=8, p=1)
    else:
        params = {"dklen": 32, "c": 2, "prf": "hmac-sha256", "salt": salt.hex()}
        derive = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=2)
    derived = derive.derive(normalize_password(password))

    encryptor = Cipher(algorithms.AES(derived[:16]), modes.CTR(iv)).encryptor()
    ciphertext = encryptor.update(secret.to_bytes(32, "big")) + encryptor.finalize()
    keystore = {
        "crypto": {
            "kdf": {"function": kdf, "params": params, "message": ""},
            "checksum": {
                "function": "sha256",
                "params": {},
                "message": hashlib.sha256(derived[16:32] + ciphertext).hexdigest(),
            },
            "cipher": {"function": "aes-128-ctr", "params": {"iv": iv.hex()}, "message": ciphertext.hex()},
        },
        "description": "test keystore",
        "path": "m/12381/3600/0/0/0",
        "uuid": str(uuid.uuid4()),
        "version": 4,
    }
    if with_pubkey:
        keystore["pubkey"] = privkey_to_pubkey(secret).hex()
    return json.dumps(keystore).encode("utf-8")


def operator_public_key(private_key):
    """SSV registry format: base64 of the PEM encoded RSA public key."""
    pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.PKCS1)
    return base64.b64encode(pem).decode("ascii")
