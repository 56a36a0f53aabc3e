# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    PSBT COORDINATOR - Command line tool to create, sign, combine and finalize multisig transactions
#    © 2024 October - 1200 Web Development <http://1200wd.com/>
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU Affero General Public License as
#    published by the Free Software Foundation, either version 3 of the
#    License, or (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU Affero General Public License for more details.
#
#    You should have received a copy of the GNU Affero General Public License
#    along with this program.  If not, see <http://www.gnu.org/licenses/>.
#

import sys
import argparse
from pathlib import Path
from psbtlib.main import PSBTLIB_VERSION, DEFAULT_NETWORK, DEFAULT_THRESHOLD, DEFAULT_COSIGNERS, DEFAULT_KEY_NAMES
from psbtlib.errors import PsbtlibError
from psbtlib.psbt import PSBT, combine_psbts
from psbtlib.wallets import KeyRecord, MultisigWallet, Utxo


DEFAULT_UTXO = '%s:0:100000000' % ('00' * 31 + '01')


# Show all errors in simple format without tracelog
def exception_handler(exception_type, exception, traceback):
    print("%s: %s" % (exception_type.__name__, exception), file=sys.stderr)


def parse_args(args=None):
    parser = argparse.ArgumentParser(description='PsbtLib multisig PSBT coordinator')
    parser.add_argument('--version', action='version', version='%(prog)s ' + PSBTLIB_VERSION)
    parser.add_argument('--network', '-n', default=DEFAULT_NETWORK,
                        help="Specify 'bitcoin', 'testnet', 'regtest' or 'signet'. Default is %s" % DEFAULT_NETWORK)
    parser.add_argument('--threshold', '-t', type=int,
                        help="Number of signatures required to spend. Default is %d for new wallets, finalize "
                             "reads it from the witness script" % DEFAULT_THRESHOLD)

    subparsers = parser.add_subparsers(required=True, dest='subparser_name')

    parser_keygen = subparsers.add_parser('keygen', description="Generate cosigner keys and write them to JSON "
                                                                "key files")
    parser_keygen.add_argument('--names', nargs='+', default=DEFAULT_KEY_NAMES,
                               help="Names of keys to create. Default is %s" % ' '.join(DEFAULT_KEY_NAMES))
    parser_keygen.add_argument('--output-dir', '-o', default='.',
                               help="Directory to store key files")

    parser_create = subparsers.add_parser('create', description="Create unsigned PSBT which spends a multisig UTXO")
    parser_create.add_argument('--keys', '-k', nargs='+', required=True, metavar='KEYFILE',
                               help="JSON key files of all cosigners")
    parser_create.add_argument('--destination', '-d', required=True, help="Destination address")
    parser_create.add_argument('--amount', '-a', type=int, default=50000000,
                               help="Amount to send in satoshi. Default is 50000000")
    parser_create.add_argument('--fee', '-f', type=int, default=1000, help="Transaction fee in satoshi")
    parser_create.add_argument('--utxo', '-u', default=DEFAULT_UTXO,
                               help="UTXO to spend as TXID:OUTPUT_N:VALUE. Default is a dummy UTXO of 1 BTC")
    parser_create.add_argument('--index', '-i', type=int, default=0,
                               help="Address index of UTXO. Default is 0")
    parser_create.add_argument('--change-index', '-c', type=int, default=1,
                               help="Address index for change output. Default is 1")
    parser_create.add_argument('--output-dir', '-o', default='.',
                               help="Directory to store unsigned PSBT files")

    parser_sign = subparsers.add_parser('sign', description="Sign PSBT with a cosigner key")
    parser_sign.add_argument('psbt', help="PSBT as filename or base64 string")
    parser_sign.add_argument('--key', '-k', required=True, metavar='KEYFILE', help="JSON key file of signer")
    parser_sign.add_argument('--output', '-o', help="Output file, default is signed_by_<name>.psbt.base64")
    parser_sign.add_argument('--permissive', action='store_true',
                             help="Skip inputs where the derived key does not match instead of failing")

    parser_combine = subparsers.add_parser('combine', description="Combine signed copies of a PSBT")
    parser_combine.add_argument('psbts', nargs='+', help="PSBTs as filename or base64 string")
    parser_combine.add_argument('--output', '-o', default='combined.psbt.base64', help="Output file")

    parser_finalize = subparsers.add_parser('finalize', description="Finalize PSBT and extract raw transaction")
    parser_finalize.add_argument('psbt', help="PSBT as filename or base64 string")
    parser_finalize.add_argument('--output', '-o', default='final_tx.hex', help="Output file for transaction hex")

    parser_info = subparsers.add_parser('info', description="Show PSBT information")
    parser_info.add_argument('psbt', help="PSBT as filename or base64 string")

    return parser.parse_args(args)


def keygen(args):
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for name in args.names:
        kr = KeyRecord.generate(name, network=args.network)
        fn = kr.save(output_dir=output_dir)
        print("Key %s" % name)
        print("  Fingerprint: %s" % kr.fingerprint.hex())
        print("  Path: %s" % kr.derivation_path)
        print("  Xpub: %s" % kr.xpub)
        print("  Saved to %s" % fn)


def create(args):
    wallet = MultisigWallet.from_key_files(args.keys, args.threshold or DEFAULT_THRESHOLD, args.network,
                                           DEFAULT_COSIGNERS)
    utxo = Utxo.from_string(args.utxo)
    print("Multisig address (index %d): %s" % (args.index, wallet.address(args.index)))
    print("Descriptor: %s" % wallet.descriptor())
    psbt = wallet.create_spend(utxo, args.destination, args.amount, args.fee, signing_index=args.index,
                               change_index=args.change_index)
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    psbt.save(Path(output_dir, 'unsigned.psbt'), as_base64=False)
    fn = psbt.save(Path(output_dir, 'unsigned.psbt.base64'))
    psbt.info(wallet.network)
    print("Unsigned PSBT saved to %s" % fn)


def sign(args):
    kr = KeyRecord.load(args.key, network=args.network)
    psbt = PSBT.load(args.psbt)
    count = kr.sign(psbt, strict=False if args.permissive else None)
    psbt.info(args.network)
    fn = psbt.save(args.output or 'signed_by_%s.psbt.base64' % kr.name)
    print("Signed %d input(s) with key %s" % (count, kr.name))
    print("Signed PSBT saved to %s" % fn)


def combine(args):
    psbt = combine_psbts([PSBT.load(p) for p in args.psbts])
    fn = psbt.save(args.output)
    print("Signatures on input 0: %d" % psbt.signature_count(0))
    print("Combined PSBT saved to %s" % fn)


def finalize(args):
    psbt = PSBT.load(args.psbt)
    tx = psbt.finalize(args.threshold).extract_transaction()
    Path(args.output).write_text(tx.raw_hex())
    print("Transaction ID: %s" % tx.txid)
    print("Size: %d, vsize: %d, weight: %d" % (tx.size, tx.vsize, tx.weight_units))
    print("Final transaction saved to %s" % args.output)


def info(args):
    PSBT.load(args.psbt).info(args.network)


def main():
    sys.excepthook = exception_handler
    args = parse_args()
    commands = {
        'keygen': keygen,
        'create': create,
        'sign': sign,
        'combine': combine,
        'finalize': finalize,
        'info': info,
    }
    try:
        commands[args.subparser_name](args)
    except (PsbtlibError, OSError) as e:
        exception_handler(type(e), e, None)
        sys.exit(1)


if __name__ == '__main__':
    main()
