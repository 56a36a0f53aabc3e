# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    Unit Tests for Encoding methods
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
from io import BytesIO

from psbtlib.encoding import *
from psbtlib.errors import FormatError


class TestEncodingVarInts(unittest.TestCase):

    def test_varbyteint_to_int_1(self):
        self.assertEqual(100, varbyteint_to_int(b'd')[0])

    def test_varbyteint_to_int_2(self):
        self.assertEqual(254, varbyteint_to_int(b'\xfe\xfe\x00\x00\x00')[0])

    def test_varbyteint_to_int_3(self):
        self.assertEqual(18440744073009551600, varbyteint_to_int(b'\xff\xf0\xd8\x9f\xf9\x07\xaf\xea\xff')[0])

    def test_varbyteint_to_int_truncated(self):
        self.assertRaisesRegex(EncodingError, "Variable length integer truncated", varbyteint_to_int, b'\xfd\x10')

    def test_int_to_varbyteint(self):
        self.assertEqual(b'd', int_to_varbyteint(100))
        self.assertEqual(b'\xfc', int_to_varbyteint(252))
        self.assertEqual(b'\xfd\xfd\x00', int_to_varbyteint(253))
        self.assertEqual(b'\xfd\xff\xff', int_to_varbyteint(0xffff))
        self.assertEqual(b'\xfe\x00\x00\x01\x00', int_to_varbyteint(0x10000))
        self.assertEqual(b'\xff\xff\xff\xff\xff\xff\xff\xff\xff', int_to_varbyteint(18446744073709551615))

    def test_int_to_varbyteint_negative(self):
        self.assertRaisesRegex(EncodingError, "must be positive", int_to_varbyteint, -1)

    def test_varstr(self):
        self.assertEqual(b'\x1eThis string has a length of 30',
                         varstr(b'This string has a length of 30'))

    def test_read_varstr(self):
        s = BytesIO(b'\x03abc\x02de')
        self.assertEqual(read_varstr(s), b'abc')
        self.assertEqual(read_varstr(s), b'de')
        self.assertRaisesRegex(EncodingError, "Cannot read variable length integer from empty data", read_varstr, s)

    def test_read_varstr_truncated(self):
        self.assertRaisesRegex(EncodingError, "Variable length string truncated, expected 5 bytes but found 2",
                               read_varstr, BytesIO(b'\x05ab'))


class TestEncodingBase58(unittest.TestCase):

    def test_base58check_encode(self):
        self.assertEqual(base58check_encode(bytes.fromhex('00010966776006953d5567439e5e39f86a0d273bee')),
                         '16UwLL9Risc3QfPqBUvKofHmBQ7wMtjvM')

    def test_base58check_decode(self):
        self.assertEqual(base58check_decode('16UwLL9Risc3QfPqBUvKofHmBQ7wMtjvM').hex(),
                         '00010966776006953d5567439e5e39f86a0d273bee')

    def test_base58check_decode_checksum_error(self):
        self.assertRaisesRegex(EncodingError, "Invalid base58 checksum", base58check_decode,
                               '16UwLL9Risc3QfPqBUvKofHmBQ7wMtjvN')

    def test_base58_leading_zeros(self):
        data = b'\0\0\0' + bytes.fromhex('3acd8f60b766e48e9db32093b419c21de7e9')
        self.assertEqual(base58_decode(base58_encode(data)), data)
        self.assertTrue(base58_encode(data).startswith('111'))

    def test_base58_invalid_character(self):
        self.assertRaises(EncodingError, base58_decode, '16UwLL9Risc3QfPqBUvKofHmBQ7wMtjv0')


class TestEncodingBech32(unittest.TestCase):

    def test_bech32_p2wpkh(self):
        self.assertEqual(addr_bech32_to_pubkeyhash('bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4', as_hex=True),
                         '751e76e8199196d454941c45d1b3a323f1433bd6')
        self.assertEqual(pubkeyhash_to_addr_bech32('751e76e8199196d454941c45d1b3a323f1433bd6'),
                         'bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4')

    def test_bech32_p2wsh_testnet(self):
        address = 'tb1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3q0sl5k7'
        program = '1863143c14c5166804bd19203356da136c985678cd4d27a1b8c6329604903262'
        self.assertEqual(addr_bech32_to_pubkeyhash(address, prefix='tb', include_witver=True, as_hex=True),
                         '0020' + program)
        self.assertEqual(pubkeyhash_to_addr_bech32(program, prefix='tb'), address)

    def test_bech32_uppercase(self):
        self.assertEqual(addr_bech32_to_pubkeyhash('BC1QW508D6QEJXTDG4Y5R3ZARVARY0C5XW7KV8F3T4', as_hex=True),
                         '751e76e8199196d454941c45d1b3a323f1433bd6')

    def test_bech32_invalid_prefix(self):
        self.assertRaisesRegex(EncodingError, "Invalid bech32 address. Prefix 'bc', prefix expected is 'tb'",
                               addr_bech32_to_pubkeyhash, 'bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4', 'tb')

    def test_bech32_invalid_checksum(self):
        self.assertRaisesRegex(EncodingError, "Bech polymod check failed",
                               addr_bech32_to_pubkeyhash, 'bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t5')

    def test_bech32_mixed_case(self):
        self.assertRaisesRegex(EncodingError, "Invalid bech32 character",
                               addr_bech32_to_pubkeyhash, 'bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kV8f3t4')

    def test_encoding_error_is_format_error(self):
        self.assertTrue(issubclass(EncodingError, FormatError))


class TestEncodingDescriptors(unittest.TestCase):

    def test_descriptor_checksum(self):
        self.assertEqual(descriptor_checksum(
            "wpkh([00aabbcc/0]033d65a099daf8d973422e75f78c29504e5e53bfb81f3b08d9bb161cdfb3c3ee9a)"), 'g6gm8u7v')
        self.assertEqual(descriptor_checksum(
            "wpkh([00aabbcc/1]xpub6BsJ4SAX3CYhcZVV9bFVvmGJ7cyboy4LJqbRJJEziPvm9Pq7v7cWkBAa1LixG9vJybxHDuWcHTtq3K4"
            "tsaKG1jMJcpZmkiacFuc7LkzUCWu)"), '2h49p59p')
        self.assertEqual(descriptor_checksum(
            "wsh(pkh([00aabbcc/2]033d65a099daf8d973422e75f78c29504e5e53bfb81f3b08d9bb161cdfb3c3ee9a))"), 'nue4wg6d')

    def test_descriptor_checksum_invalid_character(self):
        self.assertRaisesRegex(EncodingError, "Invalid character", descriptor_checksum, "raw(deadbeefé)")


class TestEncodingSignatures(unittest.TestCase):

    def test_convert_der_sig(self):
        sig = b'0E\x02!\x00\xe7\x1a\x8d\xd8>y\xfb\xd6/r\xa3\xd0\xd8\xa8\x1f\xdd\xbaS[\xd0\xf0\x88\xfa\x8b\xe1L' \
              b'\xd3F\x7f\xe5\x17\xae\x02 _l\xa4\x89LS\xcd\x8em&\xf7\x99uN\xb6\xfc\x0e\x86\xf6\x12\xd6\xdejL|' \
              b'\x07\xdcX \xa0\xe5\x18'
        self.assertEqual('e71a8dd83e79fbd62f72a3d0d8a81fddba535bd0f088fa8be14cd3467fe517ae5f6ca4894c53cd8e6d26f'
                         '799754eb6fc0e86f612d6de6a4c7c07dc5820a0e518', convert_der_sig(sig))

    def test_der_encode_sig(self):
        r = 80828100789555555332401870818771238079532314371107341426356071258591122886343
        s = 15674820848044112551623338734376985640551839688984719714434052277382938010325
        der_sig = '3045022100b2b31575f8536b284410d01217f688be3a9faf4ba0ba3a9093f983e40d630' \
                  'ec7022022a7a25b01403cff0d00b3b853d230f8e96ff832b15d4ccc75203cb65896a2d5'
        self.assertEqual(der_encode_sig(r, s).hex(), der_sig)

    def test_convert_der_sig_invalid(self):
        self.assertRaises(EncodingError, convert_der_sig, b'0E\x02!\x00\xe7\x1a')


class TestEncodingHashes(unittest.TestCase):

    def test_to_bytes(self):
        self.assertEqual(b'\xde\xad\xbe\xef', to_bytes('deadbeef'))
        self.assertEqual(b'deadbeefnohex', to_bytes('deadbeefnohex'))
        self.assertEqual(b'deadbeef', to_bytes('deadbeef', unhexlify=False))
        self.assertEqual(b'', to_bytes(None))

    def test_hashes(self):
        self.assertEqual(sha256(b'').hex(), 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855')
        self.assertEqual(double_sha256(b'').hex(),
                         '5df6e0e2761359d30a8275058e299fcc0381534545f55cf43e41983f5d4c9456')
        self.assertEqual(hash160(bytes.fromhex(
            '0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798')).hex(),
            '751e76e8199196d454941c45d1b3a323f1433bd6')


if __name__ == '__main__':
    unittest.main()
