# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    Unit Tests for Transaction Class
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

import unittest

from psbtlib.transactions import *
from psbtlib.keys import Key, sign

# Examples from https://github.com/bitcoin/bips/blob/master/bip-0143.mediawiki
BIP143_P2WPKH_TX = \
    '0100000002fff7f7881a8099afa6940d42d1e7f6362bec38171ea3edf433541db4e4ad969f0000000000eeffffffef51e1b804cc89d18' \
    '2d279655c3aa89e815b1b309fe287d9b2b55d57b90ec68a0100000000ffffffff02202cb206000000001976a9148280b37df378db99f6' \
    '6f85c95a783a76ac7a6d5988ac9093510d000000001976a9143bde42dbee7e4dbe6a21b2d50ce2f0167faa815988ac11000000'
BIP143_P2SH_P2WSH_TX = \
    '010000000136641869ca081e70f394c6948e8af409e18b619df2ed74aa106c1ca29787b96e0100000000ffffffff0200e9a43500000000' \
    '1976a914389ffce9cd9ae88dcc0631e88a821ffdbe9bfe2688acc0832f05000000001976a9147480a33f950689af511e6e84c138dbbd3c' \
    '3ee41588ac00000000'
# 6-of-6 multisig witness script
BIP143_P2SH_P2WSH_SCRIPT = \
    '56210307b8ae49ac90a048e9b53357a2354b3334e9c8bee813ecb98e99a7e07e8c3ba32103b28f0c28bfab54554ae8c658ac5c3e0ce6e7' \
    '9ad336331f78c428dd43eea8449b21034b8113d703413d57761b8b9781957b8c0ac1dfe69f492580ca4195f50376ba4a21033400f6afec' \
    'b833092a9a21cfdf1ed1376e58c5d1f47de74683123987e967a8f42103a6d48b1131e94ba04d9737d61acdaa1322008af9602b3b14862c' \
    '07a1789aac162102d8b661b0b3302ee2f162b09e07a55ad5dfbe673a9f01d9f0c19617681024306b56ae'
BIP143_P2WSH_TX = \
    '0100000002e9b542c5176808107ff1df906f46bb1f2583b16112b95ee5380665ba7fcfc0010000000000ffffffff80e68831516392fcd1' \
    '00d186b3c2c7b95c80b53c77e77c35ba03a66b429a2a1b0000000000ffffffff0280969800000000001976a914de4b231626ef508c9a74a' \
    '8517e6783c0546d6b2888ac80969800000000001976a9146648a8cd4531e1ec47f35916de8e259237294d1e88ac00000000'


class TestTransactionParse(unittest.TestCase):

    def test_transaction_parse_bip143(self):
        t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        self.assertEqual(t.version, 1)
        self.assertEqual(t.locktime, 17)
        self.assertEqual(len(t.inputs), 2)
        self.assertEqual(len(t.outputs), 2)
        self.assertEqual(t.inputs[0].prev_txid.hex(),
                         '9f96ade4b41d5433f4eda31e1738ec2b36f6e7d1420d94a6af99801a88f7f7ff')
        self.assertEqual(t.inputs[0].output_n, 0)
        self.assertEqual(t.inputs[0].sequence, 0xffffffee)
        self.assertEqual(t.inputs[1].output_n, 1)
        self.assertEqual(t.outputs[0].value, 112340000)
        self.assertEqual(t.outputs[1].value, 223450000)
        self.assertEqual(t.outputs[0].lock_script.hex(), '76a9148280b37df378db99f66f85c95a783a76ac7a6d5988ac')
        self.assertEqual(t.output_total, 335790000)
        self.assertEqual(t.raw_hex(), BIP143_P2WPKH_TX)

    def test_transaction_parse_errors(self):
        self.assertRaisesRegex(TransactionError, "version bytes incomplete", Transaction.parse, b'\1\0')
        self.assertRaisesRegex(TransactionError, "found data after locktime", Transaction.parse_hex,
                               BIP143_P2WPKH_TX + '00')
        self.assertRaisesRegex(TransactionError, "locktime bytes incomplete", Transaction.parse_hex,
                               BIP143_P2WPKH_TX[:-4])
        self.assertRaisesRegex(TransactionError, "not a hexadecimal string", Transaction.parse_hex, 'xyz')
        self.assertRaisesRegex(TransactionError, "Invalid segwit transaction flag", Transaction.parse_hex,
                               '02000000' + '0002' + BIP143_P2WPKH_TX[8:])

    def test_transaction_txid(self):
        t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        self.assertEqual(t.txid, double_sha256(bytes.fromhex(BIP143_P2WPKH_TX))[::-1].hex())
        self.assertEqual(t.txid, t.wtxid)


class TestTransactionSegwit(unittest.TestCase):

    def setUp(self):
        self.t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        self.t.inputs[1].witnesses = [b'\x30' * 71, b'\x02' * 33]

    def test_transaction_segwit_serialize(self):
        raw = self.t.raw()
        self.assertTrue(self.t.has_witness)
        self.assertEqual(raw[4:6], b'\x00\x01')
        self.assertEqual(self.t.raw(include_witness=False).hex(), BIP143_P2WPKH_TX)
        self.assertEqual(len(raw) - len(self.t.raw(include_witness=False)),
                         2 + 1 + 1 + 72 + 34)

    def test_transaction_segwit_parse(self):
        raw = self.t.raw()
        t2 = Transaction.parse(raw)
        self.assertEqual(t2, self.t)
        self.assertEqual(t2.inputs[0].witnesses, [])
        self.assertEqual(t2.inputs[1].witnesses, [b'\x30' * 71, b'\x02' * 33])
        self.assertEqual(t2.raw(), raw)

    def test_transaction_segwit_txid(self):
        unsigned = Transaction.parse_hex(BIP143_P2WPKH_TX)
        self.assertEqual(self.t.txid, unsigned.txid)
        self.assertNotEqual(self.t.wtxid, self.t.txid)

    def test_transaction_weight(self):
        base_size = len(BIP143_P2WPKH_TX) // 2
        total_size = self.t.size
        self.assertEqual(self.t.weight_units, base_size * 3 + total_size)
        self.assertEqual(self.t.vsize, -(-(base_size * 3 + total_size) // 4))
        self.assertLess(self.t.vsize, total_size)


class TestTransactionSignatureHash(unittest.TestCase):

    def test_transaction_signature_hash_p2wpkh(self):
        t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        script_code = bytes.fromhex('76a9141d0f172a0ecb48aee1be1f2687d2963ae33f71a188ac')
        self.assertEqual(t.signature_hash(1, script_code, 600000000).hex(),
                         'c37af31116d1b27caf68aae9e3ac82f1477929014d5b917657d0eb49478cb670')

    def test_transaction_signature_hash_p2wsh_multisig(self):
        t = Transaction.parse_hex(BIP143_P2SH_P2WSH_TX)
        script = bytes.fromhex(BIP143_P2SH_P2WSH_SCRIPT)
        expected = [
            (SIGHASH_ALL, '185c0be5263dce5b4bb50a047973c1b6272bfbd0103a89444597dc40b248ee7c'),
            (SIGHASH_NONE, 'e9733bc60ea13c95c6527066bb975a2ff29a925e80aa14c213f686cbae5d2f36'),
            (SIGHASH_SINGLE, '1e1f1c303dc025bd664acb72e583e933fae4cff9148bf78c157d1e8f78530aea'),
            (SIGHASH_ALL | SIGHASH_ANYONECANPAY, '2a67f03e63a6a422125878b40b82da593be8d4efaafe88ee528af6e5a9955c6e'),
            (SIGHASH_NONE | SIGHASH_ANYONECANPAY, '781ba15f3779d5542ce8ecb5c18716733a5ee42a6f51488ec96154934e2c890a'),
            (SIGHASH_SINGLE | SIGHASH_ANYONECANPAY,
             '511e8e52ed574121fc1b654970395502128263f62662e076dc6baf05c2e6a99b'),
        ]
        for hash_type, sighash in expected:
            self.assertEqual(t.signature_hash(0, script, 987654321, hash_type).hex(), sighash,
                             msg="Signature hash mismatch for hash type %d" % hash_type)

    def test_transaction_signature_hash_p2wsh_single_anyonecanpay(self):
        t = Transaction.parse_hex(BIP143_P2WSH_TX)
        script = bytes.fromhex('0063ab68210392972e2eb617b2388771abe27235fd5ac44af8e61693261550447a4c3e39da98ac')
        self.assertEqual(t.signature_hash(0, script, 16777215, SIGHASH_SINGLE | SIGHASH_ANYONECANPAY).hex(),
                         'e9071e75e25b8a1e298a72f0d2e9f4f95a0f5cdf86a533cda597eb402ed13b3a')

    def test_transaction_signature_hash_sign_verify(self):
        t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        k = Key('619c335025c7f4012e556c2a58b2506e30b8511b53ade95ea316fd8c3286feb9')
        script_code = b'\x76\xa9\x14' + k.hash160 + b'\x88\xac'
        sighash = t.signature_hash(1, script_code, 600000000)
        self.assertTrue(sign(sighash, k).verify(sighash, k.public()))

    def test_transaction_signature_hash_errors(self):
        t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        self.assertRaisesRegex(TransactionError, "Input 2 not found", t.signature_hash, 2, b'', 1000)
        self.assertRaisesRegex(TransactionError, "Need value of input 0", t.signature_hash, 0, b'', None)


class TestTransactionCreate(unittest.TestCase):

    def test_transaction_create(self):
        t = Transaction()
        self.assertEqual(t.version, 2)
        self.assertEqual(t.locktime, 0)
        t.add_input('00' * 31 + '01', 0, sequence=SEQUENCE_REPLACE_BY_FEE, value=100000000)
        t.add_output(50000000, '0014751e76e8199196d454941c45d1b3a323f1433bd6')
        t.add_output(49999000, bytes.fromhex('0014751e76e8199196d454941c45d1b3a323f1433bd6'))
        self.assertEqual(t.input_total - t.output_total, 1000)
        self.assertEqual(t.outputs[1].output_n, 1)
        self.assertEqual(t.inputs[0].outpoint.hex(), '01' + '00' * 31 + '00000000')
        self.assertEqual(t.outputs[0].address('bitcoin'), 'bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4')
        t2 = Transaction.parse(t.raw())
        self.assertEqual(t2, t)
        self.assertEqual(t2.inputs[0].sequence, 0xfffffffd)
        self.assertIsNone(t2.input_total)

    def test_transaction_output_errors(self):
        self.assertRaisesRegex(TransactionError, "Output value must be an integer", Output, -1, b'')
        self.assertRaisesRegex(TransactionError, "Output value must be an integer", Output, MAX_MONEY + 1, b'')
        self.assertIsNone(Output(0, b'\x6a').address())

    def test_transaction_input_errors(self):
        self.assertRaisesRegex(TransactionError, "Previous transaction hash must be 32 bytes", Input, '00' * 31, 0)
        self.assertRaisesRegex(TransactionError, "Output number -1 out of range", Input, '00' * 32, -1)

    def test_transaction_as_dict(self):
        t = Transaction.parse_hex(BIP143_P2WPKH_TX)
        d = t.as_dict('bitcoin')
        self.assertEqual(d['txid'], t.txid)
        self.assertEqual(len(d['inputs']), 2)
        self.assertEqual(d['outputs'][0]['value'], 112340000)
        self.assertEqual(d['weight'], t.weight_units)


if __name__ == '__main__':
    unittest.main()
