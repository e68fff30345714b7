# End to end builds: keystore -> shares -> key-shares item (-> payload), and
# the same for a batch of keystores on a worker pool.
#
# Builds are independent of each other, so they share nothing but the
# (read-only) operator list. The decrypted key never leaves build_item.

import logging
from concurrent import futures
from dataclasses import dataclass, field
from typing import List

from pydantic import TypeAdapter, ValidationError
from web3 import Web3

from . import keystore, threshold
from .config import DEFAULT_VERSION, MAX_WORKERS
from .exceptions import InvalidKeystoreFormatError, SSVKeysError
from .key_shares import KeyShares
from .key_shares_item import KeySharesItem, SetOperators, SetShares
from .models import Operator
from .payload import PayloadContext
from .reporter import LoggingReporter
from .schema import shape_error

logger = logging.getLogger(__name__)

_OPERATORS = TypeAdapter(List[Operator])


@dataclass
class KeystoreJob:
    keystore: bytes = field(repr=False)
    password: str = field(repr=False)
    name: str = ""


def build_item(keystore_bytes, password, operators, context=None, owner_address=None,
               owner_nonce=None, version=DEFAULT_VERSION):
    operators = _operators(operators)
    with keystore.decrypt(keystore_bytes, password) as key:
        shares = threshold.split(key.private_scalar,
                                 [o.id for o in operators],
                                 [o.public_key for o in operators])
        validator_public_key = Web3.to_hex(key.public_key)

    item = KeySharesItem(version)
    item.apply_update(SetOperators(operators, validator_public_key, owner_address, owner_nonce))
    item.apply_update(SetShares(shares))
    if context is not None:
        item.build_payload(context)
    return item


def validate_keystores(jobs, reporter=None):
    """Check every keystore and password up front, returning the usable jobs."""
    reporter = reporter or LoggingReporter()
    valid = []
    for index, job in enumerate(jobs):
        try:
            ok = keystore.is_valid_password(job.keystore, job.password)
        except InvalidKeystoreFormatError as e:
            logger.warning("Keystore %s is invalid: %s", job.name, e)
            ok = False
        reporter.report("%d/%d %s %s", index + 1, len(jobs), "✅" if ok else "❌", job.name)
        if ok:
            valid.append(job)
    failed = len(jobs) - len(valid)
    reporter.report("%d of %d keystore files successfully validated. %d failed validation",
                    len(valid), len(jobs), failed)
    return valid


def build_key_shares(jobs, operators, owner_address=None, owner_nonce=None, token_amount=None,
                     version=DEFAULT_VERSION, max_workers=MAX_WORKERS, reporter=None):
    """Build one item per keystore and collect them in input order.

    With an owner nonce, the keystore at position i is registered with
    owner_nonce + i. A payload is built whenever an owner or token amount is
    given.
    """
    reporter = reporter or LoggingReporter()
    operators = _operators(operators)
    jobs = list(jobs)
    if not jobs:
        raise SSVKeysError(
            "Unable to locate valid keystore files. Please verify that the keystore files are valid "
            "and the password is correct.")

    def run(index, job):
        nonce = owner_nonce + index if owner_nonce is not None else None
        context = None
        if owner_address is not None or token_amount is not None:
            context = PayloadContext(owner_address, nonce, token_amount)
        try:
            item = build_item(job.keystore, job.password, operators, context,
                              owner_address=owner_address, owner_nonce=nonce, version=version)
        except SSVKeysError as e:
            raise e.at_item(index)
        reporter.report("%d/%d built shares for %s", index + 1, len(jobs), job.name or item.validator_public_key)
        return item

    with futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
        items = list(pool.map(run, range(len(jobs)), jobs))

    key_shares = KeyShares(version)
    for item in items:
        key_shares.add(item)
    return key_shares


def _operators(operators):
    try:
        return _OPERATORS.validate_python(operators)
    except ValidationError as e:
        raise shape_error(e, "operators")
