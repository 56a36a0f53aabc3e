# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    SCRIPTS - Multisig witness scripts, P2WSH locking scripts and address conversion
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

from psbtlib.networks import Network, network_by_value, NETWORK_DEFINITIONS
from psbtlib.encoding import *
from psbtlib.errors import NetworkMismatch
from psbtlib.keys import Key


_logger = logging.getLogger(__name__)


class ScriptError(FormatError):
    """
    Handle Script exceptions
    """
    pass


def data_pack(data):
    """
    Add data length prefix to data string to include data in a script

    >>> data_pack(bytes.fromhex('0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798')).hex()[:4]
    '2102'

    :param data: Data to be packed
    :type data: bytes

    :return bytes:
    """
    if len(data) <= 75:
        return len(data).to_bytes(1, 'big') + data
    elif 75 < len(data) <= 255:
        return b'L' + len(data).to_bytes(1, 'little') + data
    else:
        return b'M' + len(data).to_bytes(2, 'little') + data


def script_commands(script):
    """
    Split a script in a list of opcodes (as integers) and data pushes (as bytes)

    >>> script_commands(bytes.fromhex('0014751e76e8199196d454941c45d1b3a323f1433bd6'))
    [0, b'u\\x1ev\\xe8\\x19\\x91\\x96\\xd4T\\x94\\x1cE\\xd1\\xb3\\xa3#\\xf1C;\\xd6']

    :param script: Raw script
    :type script: bytes

    :return list:
    """
    commands = []
    cur = 0
    while cur < len(script):
        ch = script[cur]
        cur += 1
        if 1 <= ch <= 75:
            size = ch
        elif ch == op.op_pushdata1:
            size = int.from_bytes(script[cur:cur + 1], 'little')
            cur += 1
        elif ch == op.op_pushdata2:
            size = int.from_bytes(script[cur:cur + 2], 'little')
            cur += 2
        elif ch == op.op_pushdata4:
            size = int.from_bytes(script[cur:cur + 4], 'little')
            cur += 4
        else:
            commands.append(ch)
            continue
        data = script[cur:cur + size]
        if len(data) != size:
            raise ScriptError("Malformed script, data push of %d bytes exceeds script length" % size)
        commands.append(data)
        cur += size
    return commands


def multisig_script(threshold, keys, sort=True):
    """
    Create a threshold multisignature script: OP_m <pubkey 1> ... <pubkey n> OP_n OP_CHECKMULTISIG

    With sort=True keys are sorted by their serialized compressed public key (BIP67), as used in sortedmulti
    descriptors.

    >>> k1 = '02c7c0e8ad6ac4ff3d3ff05ec6af9346a8f1c4fd3ba7c5b0f8fc3cd9c9ab5fcc11'
    >>> k2 = '0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798'
    >>> multisig_script(1, [k1, k2]).hex()[:6]
    '512102'
    >>> multisig_script(1, [k1, k2]).hex()[-4:]
    '52ae'

    :param threshold: Number of signatures required to spend
    :type threshold: int
    :param keys: List of public keys as bytes, hexstring or Key objects
    :type keys: list
    :param sort: Sort keys ascending. Default is True
    :type sort: bool

    :return bytes:
    """
    key_list = []
    for k in keys:
        if isinstance(k, Key):
            k = k.public_byte
        k = to_bytes(k)
        if len(k) != 33 or k[:1] not in [b'\2', b'\3']:
            raise ScriptError("Multisig script keys must be 33 byte compressed public keys")
        key_list.append(k)
    if not 1 <= len(key_list) <= MAX_MULTISIG_KEYS:
        raise ScriptError("Number of keys must be between 1 and %d" % MAX_MULTISIG_KEYS)
    if not 1 <= threshold <= len(key_list):
        raise ScriptError("Threshold must be between 1 and the number of keys (%d)" % len(key_list))
    if sort:
        key_list.sort()
    script = bytes([op_n(threshold)])
    for k in key_list:
        script += data_pack(k)
    return script + bytes([op_n(len(key_list)), op.op_checkmultisig])


def parse_multisig_script(script):
    """
    Parse a multisignature script and return the threshold, the public keys in script order and the number of keys

    :param script: Multisig witness script
    :type script: bytes

    :return tuple: (m, list of public keys as bytes, n)
    """
    commands = script_commands(to_bytes(script))
    if len(commands) < 4 or commands[-1] != op.op_checkmultisig:
        raise ScriptError("Script is not a multisignature script")
    m = op_n_decode(commands[0]) if isinstance(commands[0], int) else None
    n = op_n_decode(commands[-2]) if isinstance(commands[-2], int) else None
    keys = commands[1:-2]
    if not m or not n:
        raise ScriptError("Invalid multisig script, threshold and number of keys must be small integers")
    if n != len(keys) or m > n:
        raise ScriptError("Invalid multisig script, found %d keys for %d-of-%d" % (len(keys), m, n))
    for k in keys:
        if not isinstance(k, bytes) or len(k) != 33:
            raise ScriptError("Invalid multisig script, keys must be 33 byte compressed public keys")
    return m, keys, n


def p2wsh_script(witness_script):
    """
    Create a pay-to-witness-script-hash locking script: OP_0 <sha256(witness_script)>

    :param witness_script: Witness script
    :type witness_script: bytes

    :return bytes:
    """
    return b'\0' + data_pack(sha256(to_bytes(witness_script)))


def _witness_program(script):
    if 4 <= len(script) <= 42 and script[1] == len(script) - 2:
        witver = op_n_decode(script[0])
        if witver is not None:
            return witver, script[2:]
    return None, None


def script_to_address(script, network=DEFAULT_NETWORK):
    """
    Convert a locking script to an address. Supports segwit witness programs, P2PKH and P2SH scripts.

    >>> script_to_address(bytes.fromhex('001421c1bc695a56f47991e95ff26856e50f78d3c118'), 'bitcoin')
    'bc1qy8qmc6262m68ny0ftlexs4h9paud8sgce3sf84'

    :param script: Locking script
    :type script: bytes
    :param network: Network name or object. Default is DEFAULT_NETWORK
    :type network: str, Network

    :return str:
    """
    network = Network(network)
    script = to_bytes(script)
    witver, program = _witness_program(script)
    if program is not None:
        return pubkeyhash_to_addr_bech32(program, prefix=network.prefix_bech32, witver=witver)
    if len(script) == 25 and script[:3] == b'\x76\xa9\x14' and script[-2:] == b'\x88\xac':
        return base58check_encode(network.prefix_address + script[3:23])
    if len(script) == 23 and script[:2] == b'\xa9\x14' and script[-1:] == b'\x87':
        return base58check_encode(network.prefix_address_p2sh + script[2:22])
    raise ScriptError("Cannot convert script %s to an address" % script.hex())


def address_to_script(address, network=DEFAULT_NETWORK):
    """
    Convert an address to its locking script. Raises NetworkMismatch if address does not belong to given network.

    >>> address_to_script('bc1qy8qmc6262m68ny0ftlexs4h9paud8sgce3sf84', 'bitcoin').hex()
    '001421c1bc695a56f47991e95ff26856e50f78d3c118'

    :param address: Bech32, bech32m or base58 encoded address
    :type address: str
    :param network: Network name or object. Default is DEFAULT_NETWORK
    :type network: str, Network

    :return bytes:
    """
    network = Network(network)
    address = address.strip()
    pos = address.rfind('1')
    if pos > 0 and address[:pos].lower() in [nw['prefix_bech32'] for nw in NETWORK_DEFINITIONS.values()]:
        hrp = address[:pos].lower()
        if hrp != network.prefix_bech32:
            raise NetworkMismatch("Address %s belongs to network(s) %s, not to %s" %
                                  (address, ', '.join(network_by_value('prefix_bech32', hrp)), network.name))
        return addr_bech32_to_pubkeyhash(address, prefix=hrp, include_witver=True)

    try:
        data = base58check_decode(address)
    except EncodingError:
        raise ScriptError("Invalid address %s, not a bech32 or base58 encoded address" % address)
    if len(data) != 21:
        raise ScriptError("Invalid base58 address length for %s" % address)
    prefix, hashed = data[:1], data[1:]
    if prefix == network.prefix_address:
        return b'\x76\xa9\x14' + hashed + b'\x88\xac'
    if prefix == network.prefix_address_p2sh:
        return b'\xa9\x14' + hashed + b'\x87'
    networks = network_by_value('prefix_address', prefix.hex().upper()) + \
        network_by_value('prefix_address_p2sh', prefix.hex().upper())
    if networks:
        raise NetworkMismatch("Address %s belongs to network(s) %s, not to %s" %
                              (address, ', '.join(networks), network.name))
    raise ScriptError("Unknown address prefix %s for address %s" % (prefix.hex(), address))
