# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    ENCODING - Methods for encoding and conversion
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

import numbers
import hashlib
from Crypto.Hash import RIPEMD160
from psbtlib.main import *
from psbtlib.errors import FormatError
_logger = logging.getLogger(__name__)


USE_FASTECDSA = os.getenv("USE_FASTECDSA") not in ["false", "False", "0", "FALSE"]
try:
    if USE_FASTECDSA is not False:
        from fastecdsa.encoding.der import DEREncoder
        USE_FASTECDSA = True
except ImportError:
    pass
if 'fastecdsa' not in sys.modules:
    _logger.info("Could not include fastecdsa library, using slower ecdsa instead.")
    USE_FASTECDSA = False
    import ecdsa


class EncodingError(FormatError):
    """ Log and raise encoding errors """
    pass


code_strings = {
    16: '0123456789abcdef',
    32: 'qpzry9x8gf2tvdw0s3jn54khce6mua7l',
    58: '123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz',
}


def _array_to_codestring(array, base):
    codebase = code_strings[base]
    return ''.join([codebase[x] for x in array])


def _codestring_to_array(codestring, base):
    codebase = code_strings[base]
    array = []
    for s in codestring:
        pos = codebase.find(s)
        if pos < 0:
            raise EncodingError("Character '%s' not found in base%d codebase" % (s, base))
        array.append(pos)
    return array


def base58_encode(data):
    """
    Encode bytes to a base58 string. Leading zero bytes are encoded as '1' characters.

    >>> base58_encode(bytes.fromhex('00010966776006953d5567439e5e39f86a0d273beed61967f6'))
    '16UwLL9Risc3QfPqBUvKofHmBQ7wMtjvM'

    :param data: Data to encode
    :type data: bytes

    :return str:
    """
    n = int.from_bytes(data, 'big')
    chars = []
    while n > 0:
        n, rem = divmod(n, 58)
        chars.append(code_strings[58][rem])
    pad = len(data) - len(data.lstrip(b'\0'))
    return '1' * pad + ''.join(reversed(chars))


def base58_decode(string):
    """
    Decode base58 string to bytes

    :param string: Base58 encoded string
    :type string: str

    :return bytes:
    """
    n = 0
    for pos in _codestring_to_array(string, 58):
        n = n * 58 + pos
    pad = len(string) - len(string.lstrip('1'))
    body = n.to_bytes((n.bit_length() + 7) // 8, 'big') if n else b''
    return b'\0' * pad + body


def base58check_encode(data):
    """
    Base58 encode data with a 4 byte double SHA256 checksum appended

    :param data: Data to encode, including version prefix
    :type data: bytes

    :return str:
    """
    return base58_encode(data + double_sha256(data)[:4])


def base58check_decode(string):
    """
    Decode base58 string and verify and strip its checksum

    :param string: Base58 encoded string with checksum
    :type string: str

    :return bytes: Decoded data without checksum
    """
    data = base58_decode(string)
    if len(data) < 5:
        raise EncodingError("Invalid base58 string, too short")
    if double_sha256(data[:-4])[:4] != data[-4:]:
        raise EncodingError("Invalid base58 checksum")
    return data[:-4]


def varbyteint_to_int(byteint):
    """
    Convert CompactSize Variable length integer in byte format to integer.

    See https://en.bitcoin.it/wiki/Protocol_documentation#Variable_length_integer for specification

    >>> varbyteint_to_int(bytes.fromhex('fd1027'))
    (10000, 3)

    :param byteint: 1-9 byte representation
    :type byteint: bytes, list

    :return (int, int): tuple wit converted integer and size
    """
    if not isinstance(byteint, (bytes, list)):
        raise EncodingError("Byteint must be a list or defined as bytes")
    if not byteint:
        raise EncodingError("Cannot read variable length integer from empty data")
    ni = byteint[0]
    if ni < 253:
        return ni, 1
    if ni == 253:  # integer of 2 bytes
        size = 2
    elif ni == 254:  # integer of 4 bytes
        size = 4
    else:  # integer of 8 bytes
        size = 8
    if len(byteint) < size + 1:
        raise EncodingError("Variable length integer truncated, expected %d bytes" % (size + 1))
    return int.from_bytes(byteint[1:1+size][::-1], 'big'), size + 1


def read_varbyteint(s):
    """
    Read variable length integer from BytesIO stream. Wrapper for the varbyteint_to_int method

    :param s: A binary stream
    :type s: BytesIO

    :return int:
    """
    pos = s.tell()
    value, size = varbyteint_to_int(s.read(9))
    s.seek(pos + size)
    return value


def int_to_varbyteint(inp):
    """
    Convert integer to CompactSize Variable length integer in byte format.

    See https://en.bitcoin.it/wiki/Protocol_documentation#Variable_length_integer for specification

    >>> int_to_varbyteint(10000).hex()
    'fd1027'

    :param inp: Integer to convert
    :type inp: int

    :return: byteint: 1-9 byte representation as integer
    """
    if not isinstance(inp, numbers.Integral):
        raise EncodingError("Input must be an integer type")
    if inp < 0:
        raise EncodingError("Variable length integer must be positive")
    if inp < 0xfd:
        return inp.to_bytes(1, 'little')
    elif inp <= 0xffff:
        return b'\xfd' + inp.to_bytes(2, 'little')
    elif inp <= 0xffffffff:
        return b'\xfe' + inp.to_bytes(4, 'little')
    else:
        return b'\xff' + inp.to_bytes(8, 'little')


def varstr(string):
    """
    Convert string to variably sized string: Bytestring preceded with length byte

    >>> varstr(bytes.fromhex('5468697320737472696e67206861732061206c656e677468206f66203330')).hex()
    '1e5468697320737472696e67206861732061206c656e677468206f66203330'

    :param string: String input
    :type string: bytes

    :return bytes: varstring
    """
    s = to_bytes(string)
    return int_to_varbyteint(len(s)) + s


def read_varstr(s):
    """
    Read variably sized string from BytesIO stream

    :param s: A binary stream
    :type s: BytesIO

    :return bytes:
    """
    size = read_varbyteint(s)
    data = s.read(size)
    if len(data) != size:
        raise EncodingError("Variable length string truncated, expected %d bytes but found %d" % (size, len(data)))
    return data


def convert_der_sig(signature, as_hex=True):
    """
    Extract content from DER encoded string: Convert DER encoded signature to signature string.

    :param signature: DER signature
    :type signature: bytes
    :param as_hex: Output as hexstring
    :type as_hex: bool

    :return bytes, str: Signature
    """

    if not signature:
        return ""
    try:
        if USE_FASTECDSA:
            r, s = DEREncoder.decode_signature(bytes(signature))
        else:
            sg, junk = ecdsa.der.remove_sequence(signature)
            if junk != b'':
                raise EncodingError("Junk found in encoding sequence %s" % junk)
            r, sg = ecdsa.der.remove_integer(sg)
            s, sg = ecdsa.der.remove_integer(sg)
    except EncodingError:
        raise
    except Exception as e:
        raise EncodingError("Invalid DER encoded signature %s: %s" % (bytes(signature).hex(), e))
    sig = '%064x%064x' % (r, s)
    if as_hex:
        return sig
    else:
        return bytes.fromhex(sig)


def der_encode_sig(r, s):
    """
    Create DER encoded signature string with signature r and s value.

    :param r: r value of signature
    :type r: int
    :param s: s value of signature
    :type s: int

    :return bytes:
    """
    if USE_FASTECDSA:
        return DEREncoder.encode_signature(r, s)
    else:
        rb = ecdsa.der.encode_integer(r)
        sb = ecdsa.der.encode_integer(s)
        return ecdsa.der.encode_sequence(rb, sb)


def addr_bech32_to_pubkeyhash(bech, prefix=None, include_witver=False, as_hex=False):
    """
    Decode bech32 / segwit address to public key hash

    >>> addr_bech32_to_pubkeyhash('bc1qy8qmc6262m68ny0ftlexs4h9paud8sgce3sf84', as_hex=True)
    '21c1bc695a56f47991e95ff26856e50f78d3c118'

    Validate the bech32 string, and determine HRP and data. Witness version 0 addresses must use the bech32
    checksum, version 1 and higher the bech32m checksum (BIP350).

    :param bech: Bech32 address to convert
    :type bech: str
    :param prefix: Address prefix called Human-readable part. Default is None and tries to derive prefix, for bitcoin specify 'bc' and for bitcoin testnet 'tb'
    :type prefix: str
    :param include_witver: Include witness version in output, as witness program of a locking script. Default is False
    :type include_witver: bool
    :param as_hex: Output public key hash as hex or bytes. Default is False
    :type as_hex: bool

    :return str: Public Key Hash
    """
    if (any(ord(x) < 33 or ord(x) > 126 for x in bech)) or (bech.lower() != bech and bech.upper() != bech):
        raise EncodingError("Invalid bech32 character in bech string")
    bech = bech.lower()
    pos = bech.rfind('1')
    if pos < 1 or pos + 7 > len(bech) or len(bech) > 90:
        raise EncodingError("Invalid bech32 string length")
    if prefix and prefix != bech[:pos]:
        raise EncodingError("Invalid bech32 address. Prefix '%s', prefix expected is '%s'" % (bech[:pos], prefix))
    hrp = bech[:pos]
    data = _codestring_to_array(bech[pos + 1:], 32)
    hrp_expanded = [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]
    checksum_const = _bech32_polymod(hrp_expanded + data)
    if checksum_const not in (BECH32_CONST, BECH32M_CONST):
        raise EncodingError("Bech polymod check failed")
    data = data[:-6]
    if not data:
        raise EncodingError("Invalid bech32 address, no witness version found")
    witver = data[0]
    if witver > 16:
        raise EncodingError("Invalid witness version %d" % witver)
    if (witver == 0) != (checksum_const == BECH32_CONST):
        raise EncodingError("Invalid checksum type for witness version %d, use bech32 for version 0 and bech32m "
                            "for higher versions" % witver)
    decoded = convertbits(data[1:], 5, 8, pad=False)
    if decoded is None or len(decoded) < 2 or len(decoded) > 40:
        raise EncodingError("Invalid decoded data length, must be between 2 and 40")
    decoded = bytes(decoded)
    if witver == 0 and len(decoded) not in [20, 32]:
        raise EncodingError("Invalid decoded data length, must be 20 or 32 bytes")
    prefix = b''
    if include_witver:
        prefix = bytes([witver + 0x50 if witver else 0, len(decoded)])
    if as_hex:
        return (prefix + decoded).hex()
    return prefix + decoded


def pubkeyhash_to_addr_bech32(pubkeyhash, prefix='bc', witver=0, separator='1'):
    """
    Encode public key hash as bech32 encoded (segwit) address

    >>> pubkeyhash_to_addr_bech32('21c1bc695a56f47991e95ff26856e50f78d3c118')
    'bc1qy8qmc6262m68ny0ftlexs4h9paud8sgce3sf84'

    Format of address is prefix/hrp + seperator + bech32 address + checksum. Witness version 1 and higher use the
    bech32m checksum.

    For more information see BIP173 proposal at https://github.com/bitcoin/bips/blob/master/bip-0173.mediawiki

    :param pubkeyhash: Public key hash or witness program
    :type pubkeyhash: str, bytes
    :param prefix: Address prefix or Human-readable part. Default is 'bc' an abbreviation of Bitcoin. Use 'tb' for testnet.
    :type prefix: str
    :param witver: Witness version between 0 and 16
    :type witver: int
    :param separator: Separator char between hrp and data, should always be left to '1' otherwise its not standard.
    :type separator: str

    :return str: Bech32 encoded address
    """
    pubkeyhash = list(to_bytes(pubkeyhash))
    if not 0 <= witver <= 16:
        raise EncodingError("Witness version must be between 0 and 16")

    data = [witver] + convertbits(pubkeyhash, 8, 5)

    # Expand the HRP into values for checksum computation
    checksum_const = BECH32_CONST if witver == 0 else BECH32M_CONST
    hrp_expanded = [ord(x) >> 5 for x in prefix] + [0] + [ord(x) & 31 for x in prefix]
    polymod = _bech32_polymod(hrp_expanded + data + [0, 0, 0, 0, 0, 0]) ^ checksum_const
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]

    return prefix + separator + _array_to_codestring(data, 32) + _array_to_codestring(checksum, 32)


def _bech32_polymod(values):
    """
    Internal function that computes the Bech32 checksum
    """
    generator = [0x3b6a57b2, 0x26508e6d, 0x1ea119fa, 0x3d4233dd, 0x2a1462b3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1ffffff) << 5 ^ value
        for i in range(5):
            chk ^= generator[i] if ((top >> i) & 1) else 0
    return chk


def convertbits(data, frombits, tobits, pad=True):
    """
    'General power-of-2 base conversion'

    Source: https://github.com/sipa/bech32/tree/master/ref/python

    :param data: Data values to convert
    :type data: list
    :param frombits: Number of bits in source data
    :type frombits: int
    :param tobits: Number of bits in result data
    :type tobits: int
    :param pad: Use padding zero's or not. Default is True
    :type pad: bool

    :return list: Converted values
    """
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1
    for value in data:
        if value < 0 or (value >> frombits):
            return None
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)
    if pad:
        if bits:
            ret.append((acc << (tobits - bits)) & maxv)
    elif bits >= frombits or ((acc << (tobits - bits)) & maxv):
        return None
    return ret


_DESCRIPTOR_INPUT_CHARSET = "0123456789()[],'/*abcdefgh@:$%{}IJKLMNOPQRSTUVWXYZ&+-.;<=>?!^_|~" \
                            "ijklmnopqrstuvwxyzABCDEFGH`#\"\\ "


def _descriptor_polymod(c, val):
    c0 = c >> 35
    c = ((c & 0x7ffffffff) << 5) ^ val
    for i, gen in enumerate([0xf5dee51989, 0xa9fdca3312, 0x1bab10e32d, 0x3706b1677a, 0x644d626ffd]):
        if c0 & (1 << i):
            c ^= gen
    return c


def descriptor_checksum(desc):
    """
    Calculate the 8 character checksum of an output script descriptor as defined in BIP380

    >>> descriptor_checksum("wpkh([00aabbcc/0]033d65a099daf8d973422e75f78c29504e5e53bfb81f3b08d9bb161cdfb3c3ee9a)")
    'g6gm8u7v'

    :param desc: Descriptor without checksum
    :type desc: str

    :return str:
    """
    c = 1
    cls = 0
    clscount = 0
    for ch in desc:
        pos = _DESCRIPTOR_INPUT_CHARSET.find(ch)
        if pos == -1:
            raise EncodingError("Invalid character '%s' in descriptor" % ch)
        c = _descriptor_polymod(c, pos & 31)
        cls = cls * 3 + (pos >> 5)
        clscount += 1
        if clscount == 3:
            c = _descriptor_polymod(c, cls)
            cls = 0
            clscount = 0
    if clscount > 0:
        c = _descriptor_polymod(c, cls)
    for _ in range(8):
        c = _descriptor_polymod(c, 0)
    c ^= 1
    return ''.join([code_strings[32][(c >> (5 * (7 - j))) & 31] for j in range(8)])


def to_bytes(string, unhexlify=True):
    """
    Convert string, hexadecimal string  to bytes

    :param string: String to convert
    :type string: str, bytes
    :param unhexlify: Try to unhexlify hexstring
    :type unhexlify: bool

    :return: Bytes var
    """
    if not string:
        return b''
    if isinstance(string, (bytes, bytearray)):
        return bytes(string)
    if unhexlify:
        try:
            return bytes.fromhex(string)
        except (TypeError, ValueError):
            pass
    return bytes(string, 'utf8')


def sha256(string):
    return hashlib.sha256(string).digest()


def double_sha256(string, as_hex=False):
    """
    Get double SHA256 hash of string

    :param string: String to be hashed
    :type string: bytes
    :param as_hex: Return value as hexadecimal string. Default is False
    :type as_hex: bool

    :return bytes, str:
    """
    if not as_hex:
        return hashlib.sha256(hashlib.sha256(string).digest()).digest()
    else:
        return hashlib.sha256(hashlib.sha256(string).digest()).hexdigest()


def hash160(string):
    """
    Creates a RIPEMD-160 + SHA256 hash of the input string

    :param string: Script
    :type string: bytes

    :return bytes: RIPEMD-160 hash of script
    """
    return RIPEMD160.new(hashlib.sha256(string).digest()).digest()
