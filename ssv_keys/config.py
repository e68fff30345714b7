# Global settings for the key-shares builder. Values can be overridden from
# the environment; the CLI flags take precedence over both.

import os

# Key-shares document schema versions, oldest first.
#   v2: operators, validator public key, shares and a deposit payload
#   v3: v2 plus the cluster owner address and nonce
SUPPORTED_VERSIONS = ("v2", "v3")

DEFAULT_VERSION = os.environ.get("SSV_KEYS_VERSION", "v3")

if DEFAULT_VERSION not in SUPPORTED_VERSIONS:
    raise ValueError(
        "Invalid SSV_KEYS_VERSION environment variable: '{0}'. Supported values: {1}".format(
            DEFAULT_VERSION, list(SUPPORTED_VERSIONS)))

# Worker threads used when several keystores are split in one run.
MAX_WORKERS = int(os.environ.get("SSV_KEYS_MAX_WORKERS", "4"))

LOG_LEVEL = os.environ.get("SSV_KEYS_LOG_LEVEL", "INFO").upper()
