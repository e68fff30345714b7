# Command line front end. Reads keystores and key-shares files, hands the bytes
# to the core and writes the resulting key-shares JSON.
#
#   ssv-keys shares --keystore keys/ --password-file pw.txt \
#       --operator-ids 1,2,3,4 --operator-keys <base64>,<base64>,<base64>,<base64> \
#       --owner-address 0x... --owner-nonce 0 --output-folder out/
#
#   ssv-keys transaction --shares out/keyshares-1700000000.json --token-amount 123456789

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from . import config
from .builder import KeystoreJob, build_key_shares, validate_keystores
from .exceptions import InvalidOperatorIdError, OperatorCountMismatchError, SSVKeysError
from .key_shares import KeyShares
from .reporter import ConsoleReporter


def read_bytes(path):
    with open(path, 'rb') as f:
        return f.read()


def write_bytes(path, data):
    with open(path, 'wb') as f:
        f.write(data)


def keystore_files(path):
    # Either a keystore file, or a folder searched for keystore*.json files
    path = Path(path)
    if path.is_dir():
        return sorted(path.rglob('keystore*.json'))
    return [path]


def read_password(keystore_path, args, read_bytes=read_bytes):
    if args.password is not None:
        return args.password
    # Without a password option, look for a pw.txt next to the keystore
    password_file = args.password_file or os.path.join(os.path.dirname(keystore_path), 'pw.txt')
    return read_bytes(password_file).decode('utf-8').rstrip('\r\n')


def parse_operators(operator_ids, operator_keys):
    ids = operator_ids.split(',')
    keys = operator_keys.split(',')
    if len(ids) != len(keys):
        raise OperatorCountMismatchError(ids, keys)
    operators = []
    for index, (id_string, key) in enumerate(zip(ids, keys)):
        try:
            operator_id = int(id_string)
        except ValueError:
            raise InvalidOperatorIdError(
                id_string, 'Invalid operator ID at position {0}: {1}'.format(index, id_string))
        operators.append({'id': operator_id, 'publicKey': key.strip()})
    return operators


def explain_payload(payload):
    r = payload.readable
    lines = ['[',
             '    validator public key   ➡️   {0}'.format(r.validator_public_key),
             '    operators IDs          ➡️   array{0}'.format(r.operator_ids),
             '    share public keys      ➡️   array[']
    lines += ['        [{0}]: {1}'.format(i, pk) for i, pk in enumerate(r.share_public_keys)]
    lines += ['    ]', '    encrypted shares       ➡️   array[']
    lines += ['        [{0}]: {1}'.format(i, enc) for i, enc in enumerate(r.encrypted_shares)]
    lines.append('    ]')
    if r.owner_address is not None:
        lines.append('    owner address          ➡️   {0}'.format(r.owner_address))
        lines.append('    owner nonce            ➡️   {0}'.format(r.owner_nonce))
    if r.token_amount is not None:
        lines.append('    token amount           ➡️   {0}'.format(r.token_amount))
    lines.append(']')
    return '\n'.join(lines)


def shares(args, read_bytes=read_bytes, write_bytes=write_bytes):
    reporter = ConsoleReporter()
    operators = parse_operators(args.operator_ids, args.operator_keys)

    jobs = []
    for path in args.keystore:
        for keystore_path in keystore_files(path):
            jobs.append(KeystoreJob(
                keystore=read_bytes(keystore_path),
                password=read_password(keystore_path, args, read_bytes),
                name=keystore_path.name,
            ))
    jobs = validate_keystores(jobs, reporter)

    reporter.report('Generating key shares file, this might take a few minutes, do not close the terminal.')
    key_shares = build_key_shares(
        jobs, operators,
        owner_address=args.owner_address,
        owner_nonce=args.owner_nonce,
        token_amount=args.token_amount,
        version=args.version,
        max_workers=args.max_workers,
        reporter=reporter,
    )

    output = os.path.join(args.output_folder, 'keyshares-{0}.json'.format(int(time.time())))
    write_bytes(output, key_shares.serialize())
    print('Key shares file saved to {0}'.format(output))
    return output


def transaction(args, read_bytes=read_bytes, write_bytes=write_bytes):
    key_shares = KeyShares.deserialize(read_bytes(args.shares))
    payloads = key_shares.rebuild_payloads(
        owner_address=args.owner_address,
        owner_nonce=args.owner_nonce,
        token_amount=args.token_amount,
    )
    for index, payload in enumerate(payloads):
        print('Transaction payload #{0} explained:'.format(index))
        print(explain_payload(payload))
        print('Transaction raw payload #{0}:'.format(index))
        print(payload.raw)
        print()

    output = args.output or args.shares
    write_bytes(output, key_shares.serialize())
    print('Key shares file with rebuilt payloads saved to {0}'.format(output))
    return output


def build_parser():
    parser = argparse.ArgumentParser(prog='ssv-keys', description='Split validator keys into SSV key shares.')
    parser.add_argument('--log-level', metavar='log_level', type=str.upper, default=config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    commands = parser.add_subparsers(dest='command', required=True)

    p = commands.add_parser('shares', help='Generate shares for a list of operators from validator keystore files')
    p.add_argument('--keystore', metavar='keystore', action='append', required=True,
                   help='Keystore file, or folder with keystore files (repeatable)')
    password = p.add_mutually_exclusive_group()
    password.add_argument('--password', metavar='password', type=str,
                          help='Keystore password')
    password.add_argument('--password-file', metavar='password_file', type=str,
                          help='File holding the keystore password (default: pw.txt next to each keystore)')
    p.add_argument('--operator-ids', metavar='operator_ids', type=str, required=True,
                   help='Comma-separated list of operator IDs from the contract')
    p.add_argument('--operator-keys', metavar='operator_keys', type=str, required=True,
                   help='Comma-separated list of operator public keys, in the same order as the IDs')
    p.add_argument('--owner-address', metavar='owner_address', type=str, default=None,
                   help='Cluster owner address')
    p.add_argument('--owner-nonce', metavar='owner_nonce', type=int, default=None,
                   help='Owner nonce of the first validator, incremented for each keystore')
    p.add_argument('--token-amount', metavar='token_amount', type=int, default=None,
                   help='Token amount in Wei deposited with the registration')
    p.add_argument('--version', metavar='version', type=str, default=config.DEFAULT_VERSION,
                   choices=config.SUPPORTED_VERSIONS,
                   help='Key shares file version')
    p.add_argument('--output-folder', metavar='output_folder', type=str, default='.',
                   help='Folder the key shares file is written to')
    p.add_argument('--max-workers', metavar='max_workers', type=int, default=config.MAX_WORKERS,
                   help='Keystores processed in parallel')
    p.set_defaults(func=shares)

    p = commands.add_parser('transaction', help='Rebuild transaction payloads from a key shares file')
    p.add_argument('--shares', metavar='shares', type=str, required=True,
                   help='Key shares file written by the shares command')
    p.add_argument('--owner-address', metavar='owner_address', type=str, default=None,
                   help='Cluster owner address (default: the one stored with each validator)')
    p.add_argument('--owner-nonce', metavar='owner_nonce', type=int, default=None,
                   help='Owner nonce of the first validator (default: the stored ones)')
    p.add_argument('--token-amount', metavar='token_amount', type=int, default=None,
                   help='Token amount in Wei for this transaction')
    p.add_argument('--output', metavar='output', type=str, default=None,
                   help='Write the updated key shares here instead of overwriting the input')
    p.set_defaults(func=transaction)
    return parser


def main(argv=None, read_bytes=read_bytes, write_bytes=write_bytes):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    try:
        args.func(args, read_bytes, write_bytes)
    except (SSVKeysError, OSError) as e:
        print('Error: {0}'.format(e), file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
