# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    OPCODES - Bitcoin script opcodes used by the multisig and address scripts
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


_opcodes = [
    ("OP_0", 0x00), ("OP_PUSHDATA1", 0x4c), ("OP_PUSHDATA2", 0x4d), ("OP_PUSHDATA4", 0x4e),
    ("OP_1NEGATE", 0x4f), ("OP_1", 0x51), ("OP_2", 0x52), ("OP_3", 0x53), ("OP_4", 0x54), ("OP_5", 0x55),
    ("OP_6", 0x56), ("OP_7", 0x57), ("OP_8", 0x58), ("OP_9", 0x59), ("OP_10", 0x5a), ("OP_11", 0x5b),
    ("OP_12", 0x5c), ("OP_13", 0x5d), ("OP_14", 0x5e), ("OP_15", 0x5f), ("OP_16", 0x60),
    ("OP_RETURN", 0x6a), ("OP_DROP", 0x75), ("OP_DUP", 0x76), ("OP_EQUAL", 0x87), ("OP_EQUALVERIFY", 0x88),
    ("OP_HASH160", 0xa9), ("OP_CHECKSIG", 0xac), ("OP_CHECKSIGVERIFY", 0xad), ("OP_CHECKMULTISIG", 0xae),
    ("OP_CHECKMULTISIGVERIFY", 0xaf),
]


def _set_opcodes():
    cds = {}
    cds_rev = {}
    for var, code in _opcodes:
        cds.update({code: var})
        cds_rev.update({var: code})
    return cds, cds_rev


class op(object):
    """
    Opcode values as attributes, i.e. op.op_checkmultisig
    """
    pass


def opcode(name, as_bytes=True):
    """
    Get integer or byte character value of OP code by name.

    >>> opcode('OP_CHECKMULTISIG')
    b'\\xae'

    :param name: Name of OP code as defined in opcodenames
    :type name: str
    :param as_bytes: Return as byte or int? Default is bytes
    :type as_bytes: bool

    :return int, bytes:
    """
    opcode_int = opcodes[name]
    if as_bytes:
        return bytes([opcode_int])
    return opcode_int


def op_n(n):
    """
    Small integer opcode OP_1 to OP_16 for number n, OP_0 for zero

    :param n: Number between 0 and 16
    :type n: int

    :return int:
    """
    if not 0 <= n <= 16:
        raise ValueError("Small integer opcode only available for numbers 0 to 16, not %d" % n)
    return op.op_0 if n == 0 else op.op_1 + n - 1


def op_n_decode(code):
    """
    Number represented by small integer opcode, or None if code is not OP_0 to OP_16
    """
    if code == op.op_0:
        return 0
    if op.op_1 <= code <= op.op_16:
        return code - op.op_1 + 1
    return None


opcodenames, opcodes = _set_opcodes()
for _name, _code in _opcodes:
    setattr(op, _name.lower(), _code)

OP_N_CODES = range(opcodes['OP_1'], opcodes['OP_16'] + 1)
