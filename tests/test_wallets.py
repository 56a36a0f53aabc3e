# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    Unit Tests for Multisig Wallets and Key Records
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

import json
import unittest
import tempfile

from psbtlib.wallets import *
from psbtlib.errors import InsufficientSignatures
from psbtlib.keys import BKeyError
from psbtlib.psbt import combine_psbts
from psbtlib.scripts import parse_multisig_script

SEEDS = {
    'aa11bb22': '000102030405060708090a0b0c0d0e0f',
    'bb22cc33': '0f0e0d0c0b0a09080706050403020100',
    'cc33dd44': '00112233445566778899aabbccddeeff',
}
BASE_PATH = "m/48'/1'/0'/2'"
UTXO_TXID = '00' * 31 + '01'
DESTINATION_SCRIPT = bytes.fromhex('0014751e76e8199196d454941c45d1b3a323f1433bd6')


class TestWalletBase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.bases = {}
        cls.origins = []
        for fp, seed in SEEDS.items():
            base = HDKey.from_seed(seed, network='regtest').subkey_for_path(BASE_PATH)
            cls.bases[fp] = base
            cls.origins.append(KeyOrigin('key_%s' % fp[:2], base.public(), fp, BASE_PATH))
        cls.wallet = MultisigWallet(cls.origins, threshold=2, network='regtest')
        cls.destination = script_to_address(DESTINATION_SCRIPT, 'regtest')


class TestKeyOrigin(TestWalletBase):

    def test_key_origin(self):
        o = self.origins[0]
        self.assertEqual(o.fingerprint, bytes.fromhex('aa11bb22'))
        self.assertEqual(o.derivation_path, (0x80000030, 0x80000001, 0x80000000, 0x80000002))
        self.assertFalse(o.public_key.is_private)
        self.assertEqual(str(o.key_origin_info(5)), "aa11bb22/48'/1'/0'/2'/5")

    def test_key_origin_from_private_key(self):
        o = KeyOrigin('key_a', self.bases['aa11bb22'], 'aa11bb22', BASE_PATH)
        self.assertEqual(o, self.origins[0])
        self.assertFalse(o.public_key.is_private)

    def test_key_origin_immutable(self):
        o = self.origins[0]
        self.assertRaisesRegex(AttributeError, "KeyOrigin is immutable", setattr, o, 'fingerprint', b'\0' * 4)
        self.assertIsInstance(o.derivation_path, tuple)
        self.assertRaises(AttributeError, getattr, o.derivation_path, 'append')
        self.assertEqual(o.key_origin_info(5).path[:-1], list(o.derivation_path))

    def test_key_origin_child_key(self):
        o = self.origins[0]
        self.assertEqual(o.child_key(3).public_byte, self.bases['aa11bb22'].child_private(3).public_byte)
        self.assertRaises(InvalidDerivationIndex, o.child_key, HARDENED)
        self.assertRaises(InvalidDerivationIndex, o.child_key, -1)

    def test_key_origin_descriptor_key(self):
        o = self.origins[0]
        self.assertEqual(o.descriptor_key(), "[aa11bb22/48'/1'/0'/2']%s/*" % o.public_key.wif_public())

    def test_key_origin_invalid_fingerprint(self):
        self.assertRaisesRegex(ConfigError, "Fingerprint must be 4 bytes", KeyOrigin, 'key_a',
                               self.bases['aa11bb22'], 'aa11bb', BASE_PATH)


class TestMultisigWallet(TestWalletBase):

    def test_wallet_derive_at(self):
        d = self.wallet.derive_at(0)
        self.assertEqual(d.index, 0)
        self.assertTrue(d.address.startswith('bcrt1q'))
        self.assertEqual(len(d.address), 64)
        self.assertEqual(len(d.witness_script), 105)
        self.assertEqual(d.witness_script[:1], b'\x52')
        self.assertEqual(d.witness_script[-2:].hex(), '53ae')
        self.assertEqual(d.script_pubkey, p2wsh_script(d.witness_script))
        self.assertEqual(d.public_keys, sorted(d.public_keys))
        m, keys, n = parse_multisig_script(d.witness_script)
        self.assertEqual((m, n), (2, 3))
        self.assertEqual(keys, d.public_keys)

    def test_wallet_derive_at_deterministic(self):
        self.assertEqual(self.wallet.derive_at(0), self.wallet.derive_at(0))
        self.assertNotEqual(self.wallet.derive_at(0).address, self.wallet.derive_at(1).address)
        reordered = MultisigWallet(list(reversed(self.origins)), threshold=2, network='regtest')
        self.assertEqual(reordered.derive_at(7).address, self.wallet.derive_at(7).address)
        self.assertEqual(reordered.derive_at(7).witness_script, self.wallet.derive_at(7).witness_script)

    def test_wallet_derive_at_key_origins(self):
        d = self.wallet.derive_at(4)
        self.assertEqual(len(d.key_origins), 3)
        for origin in self.origins:
            pub = origin.child_key(4).public_byte
            self.assertEqual(d.key_origins[pub], KeyOriginInfo(origin.fingerprint, BASE_PATH + '/4'))

    def test_wallet_derive_at_invalid_index(self):
        self.assertRaisesRegex(InvalidDerivationIndex, "non-hardened index", self.wallet.derive_at, HARDENED)
        self.assertRaises(InvalidDerivationIndex, self.wallet.derive_at, -1)
        self.assertRaises(InvalidDerivationIndex, self.wallet.derive_at, '1')

    def test_wallet_address(self):
        self.assertEqual(self.wallet.address(2), self.wallet.derive_at(2).address)
        self.assertEqual(address_to_script(self.wallet.address(2), 'regtest'), self.wallet.derive_at(2).script_pubkey)

    def test_wallet_descriptor(self):
        desc = self.wallet.descriptor()
        body, checksum = desc.split('#')
        self.assertTrue(body.startswith("wsh(sortedmulti(2,[aa11bb22/48'/1'/0'/2']tpub"))
        self.assertTrue(body.endswith("/*))"))
        self.assertEqual(len(checksum), 8)
        self.assertEqual(checksum, descriptor_checksum(body))
        self.assertEqual(body.count('[bb22cc33/'), 1)

    def test_wallet_config_errors(self):
        self.assertRaisesRegex(ConfigError, "Threshold must be between 1 and the number of cosigners \\(3\\)",
                               MultisigWallet, self.origins, 4, 'regtest')
        self.assertRaisesRegex(ConfigError, "Threshold must be between 1", MultisigWallet, self.origins, 0, 'regtest')
        self.assertRaisesRegex(ConfigError, "Expected 3 cosigner keys, but 2 provided",
                               MultisigWallet, self.origins[:2], 2, 'regtest', 3)
        self.assertRaisesRegex(ConfigError, "Number of cosigner keys must be between 1 and 15",
                               MultisigWallet, [], 1, 'regtest')

    def test_wallet_duplicate_fingerprints(self):
        duplicate = KeyOrigin('key_d', self.bases['bb22cc33'], 'aa11bb22', BASE_PATH)
        self.assertRaisesRegex(ConfigError, "Fingerprints of cosigner keys must be unique",
                               MultisigWallet, [self.origins[0], duplicate, self.origins[2]], 2, 'regtest')

    def test_wallet_network_mismatch(self):
        self.assertRaisesRegex(NetworkMismatch, "does not belong to network bitcoin",
                               MultisigWallet, self.origins, 2, 'bitcoin')

    def test_wallet_testnet_keys(self):
        w = MultisigWallet(self.origins, 2, 'testnet')
        self.assertTrue(w.address(0).startswith('tb1q'))
        self.assertEqual(w.derive_at(0).witness_script, self.wallet.derive_at(0).witness_script)


class TestMultisigWalletSpend(TestWalletBase):

    def setUp(self):
        self.utxo = Utxo(UTXO_TXID, 0, 100000000)

    def test_wallet_create_spend(self):
        p = self.wallet.create_spend(self.utxo, self.destination, 50000000, 1000)
        self.assertEqual(p.tx.version, 2)
        self.assertEqual(p.tx.inputs[0].sequence, SEQUENCE_REPLACE_BY_FEE)
        self.assertEqual(p.tx.outputs[0].lock_script, DESTINATION_SCRIPT)
        self.assertEqual(p.tx.outputs[1].lock_script, self.wallet.derive_at(1).script_pubkey)
        self.assertEqual(p.tx.outputs[1].value, 49999000)
        self.assertEqual(p.fee(), 1000)

    def test_wallet_create_spend_no_change(self):
        p = self.wallet.create_spend(self.utxo, self.destination, 99999000, 1000)
        self.assertEqual(len(p.tx.outputs), 1)
        self.assertEqual(p.outputs[0].bip32_derivation, {})
        self.assertEqual(p.fee(), 1000)

    def test_wallet_create_spend_errors(self):
        self.assertRaisesRegex(TransactionError, "Amount must be a positive number",
                               self.wallet.create_spend, self.utxo, self.destination, 0, 1000)
        self.assertRaisesRegex(TransactionError, "Fee cannot be negative",
                               self.wallet.create_spend, self.utxo, self.destination, 1000, -1)
        self.assertRaisesRegex(TransactionError, "Insufficient funds",
                               self.wallet.create_spend, self.utxo, self.destination, 100000000, 1)

    def test_wallet_create_spend_destination_network(self):
        self.assertRaises(NetworkMismatch, self.wallet.create_spend, self.utxo,
                          'bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4', 50000000, 1000)

    def test_wallet_create_psbt_utxo_script_mismatch(self):
        utxo = Utxo(UTXO_TXID, 0, 100000000, script=self.wallet.derive_at(1).script_pubkey)
        self.assertRaisesRegex(KeyMismatch, "does not match wallet address at index 0",
                               self.wallet.create_psbt, utxo, [(50000000, self.destination)])

    def test_wallet_create_psbt_exceeds_utxo(self):
        self.assertRaisesRegex(TransactionError, "exceeds UTXO value", self.wallet.create_psbt, self.utxo,
                               [(60000000, self.destination), (50000000, self.destination)])

    def test_wallet_end_to_end(self):
        unsigned = self.wallet.create_spend(self.utxo, self.destination, 50000000, 1000)
        txid = unsigned.txid

        psbt_a = PSBT.from_base64(unsigned.to_base64())
        psbt_a, count = sign_psbt(self.bases['aa11bb22'], 'AA11BB22', psbt_a)
        self.assertEqual(count, 1)
        self.assertEqual(psbt_a.signature_count(), 1)

        psbt_b = PSBT.from_base64(unsigned.to_base64())
        psbt_b, count = sign_psbt(self.bases['bb22cc33'], 'BB22CC33', psbt_b)
        self.assertEqual(count, 1)

        self.assertRaises(InsufficientSignatures, psbt_a.copy().finalize, 2)

        combined = combine_psbts([PSBT.from_base64(psbt_a.to_base64()), PSBT.from_base64(psbt_b.to_base64())])
        self.assertEqual(combined.signature_count(), 2)
        combined.finalize(2)
        self.assertEqual(len(combined.inputs[0].final_script_witness), 4)
        tx = combined.extract_transaction()
        self.assertEqual(tx.txid, txid)
        self.assertEqual(len(tx.inputs[0].witnesses), 4)
        self.assertEqual(Transaction.parse(tx.raw()).txid, txid)

        again = self.wallet.create_spend(Utxo(UTXO_TXID, 0, 100000000), self.destination, 50000000, 1000)
        self.assertEqual(again.serialize(), unsigned.serialize())
        psbt_a2, _ = sign_psbt(self.bases['aa11bb22'], 'AA11BB22', again)
        self.assertEqual(psbt_a2.serialize(), psbt_a.serialize())


class TestUtxo(unittest.TestCase):

    def test_utxo_from_string(self):
        u = Utxo.from_string('%s:1:100000000' % UTXO_TXID)
        self.assertEqual(u.txid.hex(), UTXO_TXID)
        self.assertEqual(u.output_n, 1)
        self.assertEqual(u.value, 100000000)
        self.assertIsNone(u.script)

    def test_utxo_errors(self):
        self.assertRaisesRegex(ConfigError, "txid:output_n:value", Utxo.from_string, UTXO_TXID)
        self.assertRaisesRegex(ConfigError, "Invalid UTXO", Utxo.from_string, '%s:a:1000' % UTXO_TXID)
        self.assertRaisesRegex(ConfigError, "must be 32 bytes", Utxo.from_string, '0011:0:1000')
        self.assertRaisesRegex(ConfigError, "value must be between 1", Utxo.from_string, '%s:0:0' % UTXO_TXID)


class TestKeyRecord(unittest.TestCase):

    def setUp(self):
        self.record = KeyRecord.generate('key_a', 'regtest', seed='000102030405060708090a0b0c0d0e0f')

    def test_key_record_generate(self):
        kr = self.record
        self.assertEqual(kr.fingerprint.hex(), '3442193e')
        self.assertEqual(kr.derivation_path, "m/48'/1'/0'/2'")
        self.assertTrue(kr.xpub.startswith('tpub'))
        self.assertTrue(kr.xprv.startswith('tprv'))
        self.assertEqual(kr.network.name, 'regtest')
        self.assertEqual(kr.private_key.public_byte, kr.public_key.public_byte)

    def test_key_record_generate_random(self):
        kr1 = KeyRecord.generate('key_b', 'regtest')
        kr2 = KeyRecord.generate('key_b', 'regtest')
        self.assertNotEqual(kr1.fingerprint, kr2.fingerprint)

    def test_key_record_save_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            fn = self.record.save(output_dir=tmpdir)
            self.assertEqual(fn.name, 'key_a.json')
            data = json.loads(fn.read_text())
            self.assertEqual(sorted(data.keys()), ['derivation_path', 'fingerprint', 'name', 'xprv', 'xpub'])
            self.assertEqual(data['fingerprint'], '3442193e')
            kr = KeyRecord.load(fn)
            self.assertEqual(kr.as_dict(), self.record.as_dict())
            self.assertRaises(NetworkMismatch, KeyRecord.load, fn, 'bitcoin')

    def test_key_record_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            fn = Path(tmpdir, 'key.json')
            fn.write_text('{"name": "key_a",')
            self.assertRaisesRegex(FormatError, "Invalid JSON in key file", KeyRecord.load, fn)

    def test_key_record_missing_fields(self):
        data = self.record.as_dict()
        del data['fingerprint']
        self.assertRaisesRegex(FormatError, "missing field\\(s\\): fingerprint", KeyRecord.from_dict, data)
        self.assertRaisesRegex(FormatError, "must be a JSON object", KeyRecord.from_dict, ['key_a'])

    def test_key_record_private_key_mismatch(self):
        other = KeyRecord.generate('key_b', 'regtest', seed='0f0e0d0c0b0a09080706050403020100')
        data = self.record.as_dict()
        data['xprv'] = other.xprv
        self.assertRaisesRegex(KeyMismatch, "do not match", KeyRecord.from_dict, data)
        data['xprv'] = None
        data['xpub'] = other.xprv
        self.assertRaisesRegex(ConfigError, "contains a private key", KeyRecord.from_dict, data)

    def test_key_record_watch_only(self):
        kr = KeyRecord.from_dict(self.record.as_dict(include_private=False))
        self.assertRaisesRegex(ConfigError, "does not contain a private key", getattr, kr, 'private_key')

    def test_key_record_mistyped_xprv_not_logged(self):
        xprv = self.record.xprv
        bad = xprv[:-1] + ('A' if xprv[-1] != 'A' else 'B')
        with self.assertLogs('psbtlib', level='ERROR') as cm:
            self.assertRaisesRegex(BKeyError, "Invalid extended key checksum", KeyRecord, 'key_a', bad,
                                   self.record.xpub, self.record.fingerprint, self.record.derivation_path)
        self.assertFalse(any(bad[8:] in line for line in cm.output))
        self.assertFalse(any(xprv[8:-1] in line for line in cm.output))

    def test_key_record_key_origin(self):
        o = self.record.key_origin()
        self.assertEqual(o.fingerprint.hex(), '3442193e')
        self.assertEqual(o.derivation_path, tuple(parse_path("m/48'/1'/0'/2'")))

    def test_key_record_wallet_sign(self):
        records = [self.record] + [KeyRecord.generate('key_%s' % c, 'regtest', seed=s) for c, s in
                                   [('b', '0f0e0d0c0b0a09080706050403020100'),
                                    ('c', '00112233445566778899aabbccddeeff')]]
        wallet = MultisigWallet.from_key_records(records, cosigners=3)
        self.assertEqual(wallet.network.name, 'regtest')
        p = wallet.create_spend(Utxo(UTXO_TXID, 0, 100000000),
                                script_to_address(DESTINATION_SCRIPT, 'regtest'), 50000000, 1000)
        self.assertEqual(records[0].sign(p), 1)
        self.assertEqual(records[2].sign(p), 1)
        tx = p.finalize().extract_transaction()
        self.assertEqual(len(tx.inputs[0].witnesses), 4)

    def test_key_record_wallet_from_files(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            records = [self.record, KeyRecord.generate('key_b', 'regtest', seed='0f0e0d0c0b0a09080706050403020100'),
                       KeyRecord.generate('key_c', 'regtest', seed='00112233445566778899aabbccddeeff')]
            filenames = [r.save(output_dir=tmpdir) for r in records]
            wallet = MultisigWallet.from_key_files(filenames, threshold=2, network='regtest', cosigners=3)
            self.assertEqual(wallet.address(0), MultisigWallet.from_key_records(records).address(0))


if __name__ == '__main__':
    unittest.main()
