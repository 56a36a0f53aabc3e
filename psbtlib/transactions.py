# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    TRANSACTION class to create, serialize and sign segwit transactions
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

import math
from io import BytesIO
from psbtlib.encoding import *
from psbtlib.networks import Network
from psbtlib.scripts import script_to_address, ScriptError


_logger = logging.getLogger(__name__)


class TransactionError(FormatError):
    """
    Handle Transaction class Exceptions
    """
    pass


class Input(object):
    """
    Transaction Input class, used by Transaction class

    An Input contains a reference to an UTXO or Unspent Transaction Output (prev_txid + output_n).
    For segwit inputs the value of the UTXO is needed to create a signature hash, and the unlocking data is stored
    in the witnesses list.
    """

    def __init__(self, prev_txid, output_n, sequence=SEQUENCE_FINAL, value=None, witnesses=None,
                 unlocking_script=b'', index_n=0):
        """
        Create a new transaction input

        :param prev_txid: Transaction hash of the UTXO (previous output) which will be spent, in display byte order.
        :type prev_txid: bytes, str
        :param output_n: Output number in previous transaction.
        :type output_n: int
        :param sequence: Sequence part of input, default is SEQUENCE_FINAL
        :type sequence: int
        :param value: Value of input in the smallest denominator, i.e. satoshi. Only needed to sign the input
        :type value: int
        :param witnesses: List of witness stack items
        :type witnesses: list of bytes
        :param unlocking_script: Unlocking script (scriptSig), always empty for native segwit inputs
        :type unlocking_script: bytes
        :param index_n: Index of input in transaction
        :type index_n: int
        """
        self.prev_txid = to_bytes(prev_txid)
        if len(self.prev_txid) != 32:
            raise TransactionError("Previous transaction hash must be 32 bytes")
        if not 0 <= output_n <= 0xffffffff:
            raise TransactionError("Output number %d out of range" % output_n)
        if not 0 <= sequence <= 0xffffffff:
            raise TransactionError("Sequence %d out of range" % sequence)
        self.output_n = output_n
        self.sequence = sequence
        self.value = value
        self.witnesses = list(witnesses) if witnesses else []
        self.unlocking_script = to_bytes(unlocking_script)
        self.index_n = index_n

    @classmethod
    def parse(cls, raw, index_n=0):
        """
        Parse raw BytesIO string and return Input object

        :param raw: Input
        :type raw: BytesIO
        :param index_n: Index number of input
        :type index_n: int

        :return Input:
        """
        prev_hash = raw.read(32)[::-1]
        output_n = raw.read(4)
        if len(prev_hash) != 32 or len(output_n) != 4:
            raise TransactionError("Input transaction hash or output number not found")
        unlocking_script = read_varstr(raw)
        sequence = raw.read(4)
        if len(sequence) != 4:
            raise TransactionError("Input sequence number not found")
        return Input(prev_txid=prev_hash, output_n=int.from_bytes(output_n, 'little'),
                     sequence=int.from_bytes(sequence, 'little'), unlocking_script=unlocking_script, index_n=index_n)

    @property
    def outpoint(self):
        return self.prev_txid[::-1] + self.output_n.to_bytes(4, 'little')

    def __eq__(self, other):
        if not isinstance(other, Input):
            return False
        return self.prev_txid == other.prev_txid and self.output_n == other.output_n and \
            self.sequence == other.sequence and self.unlocking_script == other.unlocking_script and \
            self.witnesses == other.witnesses

    def as_dict(self):
        """
        Get transaction input information in json format

        :return dict: Json with txid, output_n, sequence, value and witnesses
        """
        return {
            'index_n': self.index_n,
            'prev_txid': self.prev_txid.hex(),
            'output_n': self.output_n,
            'sequence': self.sequence,
            'value': self.value,
            'witnesses': [w.hex() for w in self.witnesses],
        }

    def __repr__(self):
        return "<Input(prev_txid='%s', output_n=%d, index_n=%d)>" % (self.prev_txid.hex(), self.output_n,
                                                                      self.index_n)


class Output(object):
    """
    Transaction Output class, normally part of Transaction class.

    Contains the amount and the locking script of an output.
    """

    def __init__(self, value, lock_script, output_n=0):
        """
        Create a new transaction output

        :param value: Amount of output in the smallest denominator, i.e. satoshi
        :type value: int
        :param lock_script: Locking script of output
        :type lock_script: bytes, str
        :param output_n: Output index in transaction
        :type output_n: int
        """
        if not isinstance(value, int) or not 0 <= value <= MAX_MONEY:
            raise TransactionError("Output value must be an integer between 0 and %d" % MAX_MONEY)
        self.value = value
        self.lock_script = to_bytes(lock_script)
        self.output_n = output_n

    @classmethod
    def parse(cls, raw, output_n=0):
        """
        Parse raw BytesIO string and return Output object

        :param raw: raw output stream
        :type raw: BytesIO
        :param output_n: Output number of Transaction output
        :type output_n: int

        :return Output:
        """
        value = raw.read(8)
        if len(value) != 8:
            raise TransactionError("Output value not found")
        lock_script = read_varstr(raw)
        return Output(int.from_bytes(value, 'little'), lock_script, output_n=output_n)

    def raw(self):
        return self.value.to_bytes(8, 'little') + varstr(self.lock_script)

    def address(self, network=DEFAULT_NETWORK):
        """
        Address of this output on given network, or None if the locking script has no address form

        :return str:
        """
        try:
            return script_to_address(self.lock_script, network)
        except ScriptError:
            return None

    def __eq__(self, other):
        if not isinstance(other, Output):
            return False
        return self.value == other.value and self.lock_script == other.lock_script

    def as_dict(self, network=DEFAULT_NETWORK):
        return {
            'output_n': self.output_n,
            'value': self.value,
            'lock_script': self.lock_script.hex(),
            'address': self.address(network),
        }

    def __repr__(self):
        return "<Output(value=%d, lock_script=%s)>" % (self.value, self.lock_script.hex())


class Transaction(object):
    """
    Transaction Class

    Contains 1 or more Input class object with UTXO's to spent and 1 or more Output class objects with destinations.
    Besides the transaction class contains a locktime and version.

    Witness data is included in the serialization as soon as one of the inputs has witnesses (BIP144).
    """

    @classmethod
    def parse(cls, rawtx):
        """
        Parse a raw transaction and create a Transaction object

        :param rawtx: Raw transaction string
        :type rawtx: BytesIO, bytes, str

        :return Transaction:
        """
        if isinstance(rawtx, bytes):
            rawtx = BytesIO(rawtx)
        elif isinstance(rawtx, str):
            rawtx = BytesIO(bytes.fromhex(rawtx))
        t = cls.parse_bytesio(rawtx)
        if rawtx.read(1):
            raise TransactionError("Invalid transaction, found data after locktime")
        return t

    @classmethod
    def parse_bytesio(cls, rawtx):
        """
        Parse a raw transaction and create a Transaction object

        :param rawtx: Raw transaction bytes stream
        :type rawtx: BytesIO

        :return Transaction:
        """
        try:
            rawtx.tell()
        except AttributeError:
            raise TransactionError("Provide raw transaction as BytesIO. Use parse or parse_hex to parse "
                                   "other data types")

        segwit = False
        version = rawtx.read(4)
        if len(version) != 4:
            raise TransactionError("Invalid transaction, version bytes incomplete")
        marker = rawtx.read(1)
        if marker == b'\0':
            if rawtx.read(1) != b'\1':
                raise TransactionError("Invalid segwit transaction flag")
            segwit = True
        elif marker:
            rawtx.seek(-1, 1)

        try:
            n_inputs = read_varbyteint(rawtx)
            inputs = [Input.parse(rawtx, index_n=n) for n in range(n_inputs)]
            n_outputs = read_varbyteint(rawtx)
            outputs = [Output.parse(rawtx, output_n=n) for n in range(n_outputs)]
            if segwit:
                for inp in inputs:
                    n_items = read_varbyteint(rawtx)
                    inp.witnesses = [read_varstr(rawtx) for _ in range(n_items)]
        except EncodingError as e:
            raise TransactionError("Invalid transaction encoding: %s" % e)

        locktime_bytes = rawtx.read(4)
        if len(locktime_bytes) != 4:
            raise TransactionError("Invalid transaction size, locktime bytes incomplete")

        return Transaction(inputs, outputs, locktime=int.from_bytes(locktime_bytes, 'little'),
                           version=int.from_bytes(version, 'little'))

    @classmethod
    def parse_hex(cls, rawtx):
        """
        Parse a raw hexadecimal transaction and create a Transaction object. Wrapper for the :func:`parse_bytesio`
        method

        :param rawtx: Raw transaction hexadecimal string
        :type rawtx: str

        :return Transaction:
        """
        try:
            raw_bytes = bytes.fromhex(rawtx)
        except ValueError:
            raise TransactionError("Raw transaction is not a hexadecimal string")
        return cls.parse(raw_bytes)

    def __init__(self, inputs=None, outputs=None, locktime=0, version=DEFAULT_TX_VERSION):
        """
        Create a new transaction class with provided inputs and outputs.

        :param inputs: Array of Input objects. Leave empty to add later
        :type inputs: list of Input
        :param outputs: Array of Output object. Leave empty to add later
        :type outputs: list of Output
        :param locktime: Transaction level locktime. Default is 0
        :type locktime: int
        :param version: Version of transaction. Default is 2
        :type version: int
        """
        self.inputs = list(inputs) if inputs else []
        self.outputs = list(outputs) if outputs else []
        for n, i in enumerate(self.inputs):
            i.index_n = n
        for n, o in enumerate(self.outputs):
            o.output_n = n
        self.locktime = locktime
        self.version = version

    def __repr__(self):
        return "<Transaction(id=%s, inputs=%d, outputs=%d)>" % (self.txid, len(self.inputs), len(self.outputs))

    def __str__(self):
        return self.txid

    def __eq__(self, other):
        """
        Compare two transaction, must have same version, locktime, inputs and outputs

        :return bool:
        """
        if not isinstance(other, Transaction):
            return False
        return self.version == other.version and self.locktime == other.locktime and \
            self.inputs == other.inputs and self.outputs == other.outputs

    def add_input(self, prev_txid, output_n, sequence=SEQUENCE_FINAL, value=None):
        """
        Add input to this transaction

        :return int: Transaction index number (index_n)
        """
        index_n = len(self.inputs)
        self.inputs.append(Input(prev_txid, output_n, sequence=sequence, value=value, index_n=index_n))
        return index_n

    def add_output(self, value, lock_script):
        """
        Add an output to this transaction

        :return int: Transaction output number (output_n)
        """
        output_n = len(self.outputs)
        self.outputs.append(Output(value, lock_script, output_n=output_n))
        return output_n

    @property
    def has_witness(self):
        return any(i.witnesses for i in self.inputs)

    def raw(self, include_witness=True):
        """
        Serialize raw transaction. If include_witness is True and any of the inputs has witness data the
        transaction is serialized with segwit marker, flag and witness data (BIP144).

        :param include_witness: Include witness data. Default is True
        :type include_witness: bool

        :return bytes:
        """
        segwit = include_witness and self.has_witness
        r = self.version.to_bytes(4, 'little')
        if segwit:
            r += b'\x00'  # marker (BIP 144)
            r += b'\x01'  # flag (BIP 144)
        r += int_to_varbyteint(len(self.inputs))
        for i in self.inputs:
            r += i.outpoint + varstr(i.unlocking_script) + i.sequence.to_bytes(4, 'little')
        r += int_to_varbyteint(len(self.outputs))
        for o in self.outputs:
            r += o.raw()
        if segwit:
            r += self.witness_data()
        r += self.locktime.to_bytes(4, 'little')
        return r

    def raw_hex(self, include_witness=True):
        """
        Wrapper for raw() method. Return current raw transaction hex

        :return hexstring:
        """
        return self.raw(include_witness).hex()

    def witness_data(self):
        """
        Get witness data for all inputs of this transaction

        :return bytes:
        """
        witness_data = b''
        for i in self.inputs:
            witness_data += int_to_varbyteint(len(i.witnesses)) + b''.join([varstr(w) for w in i.witnesses])
        return witness_data

    @property
    def txid(self):
        """
        Transaction ID: reversed double SHA256 hash of the transaction serialized without witness data

        :return str:
        """
        return double_sha256(self.raw(include_witness=False))[::-1].hex()

    @property
    def wtxid(self):
        return double_sha256(self.raw())[::-1].hex()

    @property
    def size(self):
        return len(self.raw())

    @property
    def weight_units(self):
        """
        Weight units as defined in BIP141: non-witness size times 3 plus the total size

        :return int:
        """
        return len(self.raw(include_witness=False)) * 3 + len(self.raw())

    @property
    def vsize(self):
        return math.ceil(self.weight_units / 4)

    @property
    def input_total(self):
        if any(i.value is None for i in self.inputs):
            return None
        return sum([i.value for i in self.inputs])

    @property
    def output_total(self):
        return sum([o.value for o in self.outputs])

    def signature_hash(self, sign_id, script_code, value, hash_type=SIGHASH_ALL):
        """
        Create the BIP143 signature hash for segregated witness input sign_id

        :param sign_id: Index of input to sign
        :type sign_id: int
        :param script_code: Script code of the input, i.e. the witness script for P2WSH inputs
        :type script_code: bytes
        :param value: Value of the UTXO spent by this input in satoshi
        :type value: int
        :param hash_type: Specific hash type, default is SIGHASH_ALL
        :type hash_type: int

        :return bytes: Double SHA256 hash of serialized signature data
        """
        if not 0 <= sign_id < len(self.inputs):
            raise TransactionError("Input %d not found in transaction" % sign_id)
        if value is None:
            raise TransactionError("Need value of input %d to create transaction signature" % sign_id)
        hash_prevouts = b'\0' * 32
        hash_sequence = b'\0' * 32
        hash_outputs = b'\0' * 32
        base_type = hash_type & 0x1f

        if not hash_type & SIGHASH_ANYONECANPAY:
            hash_prevouts = double_sha256(b''.join([i.outpoint for i in self.inputs]))
            if base_type != SIGHASH_SINGLE and base_type != SIGHASH_NONE:
                hash_sequence = double_sha256(b''.join([i.sequence.to_bytes(4, 'little') for i in self.inputs]))
        if base_type != SIGHASH_SINGLE and base_type != SIGHASH_NONE:
            hash_outputs = double_sha256(b''.join([o.raw() for o in self.outputs]))
        elif base_type == SIGHASH_SINGLE and sign_id < len(self.outputs):
            hash_outputs = double_sha256(self.outputs[sign_id].raw())

        inp = self.inputs[sign_id]
        ser_tx = \
            self.version.to_bytes(4, 'little') + hash_prevouts + hash_sequence + inp.outpoint + \
            varstr(script_code) + int(value).to_bytes(8, 'little') + inp.sequence.to_bytes(4, 'little') + \
            hash_outputs + self.locktime.to_bytes(4, 'little') + hash_type.to_bytes(4, 'little')
        return double_sha256(ser_tx)

    def as_dict(self, network=DEFAULT_NETWORK):
        """
        Return Json dictionary with transaction information: Inputs, outputs, version and locktime

        :return dict:
        """
        return {
            'txid': self.txid,
            'version': self.version,
            'locktime': self.locktime,
            'inputs': [i.as_dict() for i in self.inputs],
            'outputs': [o.as_dict(network) for o in self.outputs],
            'size': self.size,
            'vsize': self.vsize,
            'weight': self.weight_units,
        }

    def info(self, network=DEFAULT_NETWORK):
        """
        Prints transaction information to standard output
        """
        network = Network(network)
        print("Transaction %s" % self.txid)
        print("Network: %s" % network.name)
        print("Version: %d" % self.version)
        print("Locktime: %d" % self.locktime)
        print("Inputs")
        replace_by_fee = False
        for ti in self.inputs:
            print("-", ti.prev_txid.hex(), ti.output_n, network.print_value(ti.value))
            print("  witness items: %d" % len(ti.witnesses))
            if ti.sequence <= SEQUENCE_REPLACE_BY_FEE:
                replace_by_fee = True
        print("Outputs")
        for to in self.outputs:
            print("-", to.address(network) or to.lock_script.hex(), network.print_value(to.value))
        if replace_by_fee:
            print("Replace by fee: Enabled")
        print("Size: %d" % self.size)
        print("Vsize: %d" % self.vsize)
        print("Weight: %d" % self.weight_units)
