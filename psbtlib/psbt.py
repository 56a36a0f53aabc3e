# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    PSBT - Partially Signed Bitcoin Transactions (BIP174): serialize, sign, combine and finalize
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

import base64
import binascii
from io import BytesIO
from psbtlib.encoding import *
from psbtlib.errors import PsbtlibError, ConfigError, InvalidDerivationIndex, MissingInputMetadata, KeyMismatch, \
    InsufficientSignatures
from psbtlib.keys import HDKey, KeyOriginInfo, Signature, BKeyError, parse_fingerprint, sign
from psbtlib.networks import Network
from psbtlib.scripts import p2wsh_script, parse_multisig_script
from psbtlib.transactions import Transaction, Output


_logger = logging.getLogger(__name__)


class PSBTError(PsbtlibError):
    """
    Handle PSBT exceptions: conflicting merges and invalid use of partially signed transactions
    """
    pass


def _key_value(key_type, key_data, value):
    return int_to_varbyteint(key_type) + key_data, value


def _write_map(pairs):
    # Sorted by key, so serialization is canonical
    return b''.join([varstr(k) + varstr(v) for k, v in sorted(pairs)]) + b'\0'


def _read_map(s):
    """
    Read key-value pairs from stream until the 0x00 separator. Returns list of (key_type, key_data, value, key)
    """
    items = []
    keys = set()
    while True:
        key = read_varstr(s)
        if not key:
            return items
        value = read_varstr(s)
        if key in keys:
            raise FormatError("Duplicate key %s in PSBT map" % key.hex())
        keys.add(key)
        key_type, size = varbyteint_to_int(key)
        items.append((key_type, key[size:], value, key))


def _check_keydata(key_type, key_data, expected_len=0):
    if len(key_data) != expected_len:
        raise FormatError("Invalid key data length %d for PSBT key type 0x%02x" % (len(key_data), key_type))


def _parse_witness_stack(data):
    s = BytesIO(data)
    stack = [read_varstr(s) for _ in range(read_varbyteint(s))]
    if s.read(1):
        raise FormatError("Data found after end of witness stack")
    return stack


class PartialSignature(object):
    """
    Signature of one cosigner for one transaction input: DER encoded signature with sighash type byte appended.

    Partial signatures are ordered by the serialized public key, which is the order of keys in a sortedmulti script.
    """

    def __init__(self, public_key, signature):
        self.public_key = to_bytes(public_key)
        self.signature = to_bytes(signature)
        if len(self.public_key) not in [33, 65]:
            raise FormatError("Invalid public key length %d for partial signature" % len(self.public_key))
        if not self.signature:
            raise FormatError("Empty partial signature")

    @property
    def sighash_type(self):
        return self.signature[-1]

    def __eq__(self, other):
        if not isinstance(other, PartialSignature):
            return False
        return self.public_key == other.public_key and self.signature == other.signature

    def __lt__(self, other):
        return self.public_key < other.public_key

    def __repr__(self):
        return "<PartialSignature(public_key=%s, signature=%s)>" % (self.public_key.hex(), self.signature.hex())


class PSBTInput(object):
    """
    Per input signing data of a partially signed transaction
    """

    def __init__(self, non_witness_utxo=None, witness_utxo=None, partial_sigs=None, sighash_type=None,
                 redeem_script=None, witness_script=None, bip32_derivation=None, final_script_sig=None,
                 final_script_witness=None, unknown=None):
        self.non_witness_utxo = non_witness_utxo
        self.witness_utxo = witness_utxo
        self.partial_sigs = partial_sigs or {}
        self.sighash_type = sighash_type
        self.redeem_script = redeem_script
        self.witness_script = witness_script
        self.bip32_derivation = bip32_derivation or {}
        self.final_script_sig = final_script_sig
        self.final_script_witness = final_script_witness
        self.unknown = unknown or {}

    @classmethod
    def parse(cls, s):
        inp = cls()
        for key_type, key_data, value, key in _read_map(s):
            if key_type == PSBT_IN_NON_WITNESS_UTXO:
                _check_keydata(key_type, key_data)
                inp.non_witness_utxo = value
            elif key_type == PSBT_IN_WITNESS_UTXO:
                _check_keydata(key_type, key_data)
                vs = BytesIO(value)
                inp.witness_utxo = Output.parse(vs)
                if vs.read(1):
                    raise FormatError("Data found after end of witness UTXO")
            elif key_type == PSBT_IN_PARTIAL_SIG:
                inp.partial_sigs[key_data] = PartialSignature(key_data, value)
            elif key_type == PSBT_IN_SIGHASH_TYPE:
                _check_keydata(key_type, key_data)
                if len(value) != 4:
                    raise FormatError("Sighash type must be 4 bytes")
                inp.sighash_type = int.from_bytes(value, 'little')
            elif key_type == PSBT_IN_REDEEM_SCRIPT:
                _check_keydata(key_type, key_data)
                inp.redeem_script = value
            elif key_type == PSBT_IN_WITNESS_SCRIPT:
                _check_keydata(key_type, key_data)
                inp.witness_script = value
            elif key_type == PSBT_IN_BIP32_DERIVATION:
                if len(key_data) not in [33, 65]:
                    raise FormatError("Invalid public key length %d in BIP32 derivation" % len(key_data))
                inp.bip32_derivation[key_data] = KeyOriginInfo.parse(value)
            elif key_type == PSBT_IN_FINAL_SCRIPTSIG:
                _check_keydata(key_type, key_data)
                inp.final_script_sig = value
            elif key_type == PSBT_IN_FINAL_SCRIPTWITNESS:
                _check_keydata(key_type, key_data)
                inp.final_script_witness = _parse_witness_stack(value)
            else:
                inp.unknown[key] = value
        return inp

    def serialize(self):
        pairs = []
        if self.non_witness_utxo is not None:
            pairs.append(_key_value(PSBT_IN_NON_WITNESS_UTXO, b'', self.non_witness_utxo))
        if self.witness_utxo is not None:
            pairs.append(_key_value(PSBT_IN_WITNESS_UTXO, b'', self.witness_utxo.raw()))
        for pub, ps in self.partial_sigs.items():
            pairs.append(_key_value(PSBT_IN_PARTIAL_SIG, pub, ps.signature))
        if self.sighash_type is not None:
            pairs.append(_key_value(PSBT_IN_SIGHASH_TYPE, b'', self.sighash_type.to_bytes(4, 'little')))
        if self.redeem_script is not None:
            pairs.append(_key_value(PSBT_IN_REDEEM_SCRIPT, b'', self.redeem_script))
        if self.witness_script is not None:
            pairs.append(_key_value(PSBT_IN_WITNESS_SCRIPT, b'', self.witness_script))
        for pub, origin in self.bip32_derivation.items():
            pairs.append(_key_value(PSBT_IN_BIP32_DERIVATION, pub, origin.serialize()))
        if self.final_script_sig is not None:
            pairs.append(_key_value(PSBT_IN_FINAL_SCRIPTSIG, b'', self.final_script_sig))
        if self.final_script_witness is not None:
            stack = int_to_varbyteint(len(self.final_script_witness)) + \
                b''.join([varstr(w) for w in self.final_script_witness])
            pairs.append(_key_value(PSBT_IN_FINAL_SCRIPTWITNESS, b'', stack))
        pairs += list(self.unknown.items())
        return _write_map(pairs)

    @property
    def is_finalized(self):
        return self.final_script_witness is not None or self.final_script_sig is not None

    def __eq__(self, other):
        if not isinstance(other, PSBTInput):
            return False
        return vars(self) == vars(other)

    def __repr__(self):
        return "<PSBTInput(partial_sigs=%d, finalized=%s)>" % (len(self.partial_sigs), self.is_finalized)


class PSBTOutput(object):
    """
    Per output data of a partially signed transaction, used to recognise change outputs
    """

    def __init__(self, redeem_script=None, witness_script=None, bip32_derivation=None, unknown=None):
        self.redeem_script = redeem_script
        self.witness_script = witness_script
        self.bip32_derivation = bip32_derivation or {}
        self.unknown = unknown or {}

    @classmethod
    def parse(cls, s):
        outp = cls()
        for key_type, key_data, value, key in _read_map(s):
            if key_type == PSBT_OUT_REDEEM_SCRIPT:
                _check_keydata(key_type, key_data)
                outp.redeem_script = value
            elif key_type == PSBT_OUT_WITNESS_SCRIPT:
                _check_keydata(key_type, key_data)
                outp.witness_script = value
            elif key_type == PSBT_OUT_BIP32_DERIVATION:
                if len(key_data) not in [33, 65]:
                    raise FormatError("Invalid public key length %d in BIP32 derivation" % len(key_data))
                outp.bip32_derivation[key_data] = KeyOriginInfo.parse(value)
            else:
                outp.unknown[key] = value
        return outp

    def serialize(self):
        pairs = []
        if self.redeem_script is not None:
            pairs.append(_key_value(PSBT_OUT_REDEEM_SCRIPT, b'', self.redeem_script))
        if self.witness_script is not None:
            pairs.append(_key_value(PSBT_OUT_WITNESS_SCRIPT, b'', self.witness_script))
        for pub, origin in self.bip32_derivation.items():
            pairs.append(_key_value(PSBT_OUT_BIP32_DERIVATION, pub, origin.serialize()))
        pairs += list(self.unknown.items())
        return _write_map(pairs)

    def __eq__(self, other):
        if not isinstance(other, PSBTOutput):
            return False
        return vars(self) == vars(other)

    def __repr__(self):
        return "<PSBTOutput(bip32_derivation=%d)>" % len(self.bip32_derivation)


class PSBT(object):
    """
    Partially Signed Bitcoin Transaction as defined in BIP174.

    Contains an unsigned transaction and for each input and output the information cosigners need to sign
    the transaction: the UTXO spent, the witness script and the key origins of all keys in the script.

    A PSBT goes through the following stages: created unsigned by a wallet, signed by each cosigner with
    the :func:`sign` method, merged with :func:`combine` and completed with :func:`finalize`. The final
    transaction can then be extracted with :func:`extract_transaction`.
    """

    def __init__(self, tx, inputs=None, outputs=None, xpubs=None, version=None, unknown=None):
        """
        Create a new PSBT for given unsigned transaction

        :param tx: Unsigned transaction, inputs must have empty unlocking scripts and witnesses
        :type tx: Transaction
        :param inputs: List of PSBTInput objects, one for every transaction input. Leave empty to create empty inputs
        :type inputs: list of PSBTInput
        :param outputs: List of PSBTOutput objects, one for every transaction output
        :type outputs: list of PSBTOutput
        :param xpubs: Dictionary with serialized extended public key (78 bytes) and its KeyOriginInfo
        :type xpubs: dict
        :param version: PSBT version number. Leave empty to omit version field (version 0)
        :type version: int
        :param unknown: Unknown global key-value pairs, which are kept as is
        :type unknown: dict
        """
        if not isinstance(tx, Transaction):
            raise PSBTError("Unsigned transaction must be a Transaction object")
        for i in tx.inputs:
            if i.unlocking_script or i.witnesses:
                raise FormatError("Unsigned transaction input %d has a non-empty unlocking script or witness" %
                                  i.index_n)
        self.tx = tx
        self.inputs = inputs if inputs is not None else [PSBTInput() for _ in tx.inputs]
        self.outputs = outputs if outputs is not None else [PSBTOutput() for _ in tx.outputs]
        if len(self.inputs) != len(tx.inputs):
            raise FormatError("Number of PSBT inputs (%d) does not match transaction inputs (%d)" %
                              (len(self.inputs), len(tx.inputs)))
        if len(self.outputs) != len(tx.outputs):
            raise FormatError("Number of PSBT outputs (%d) does not match transaction outputs (%d)" %
                              (len(self.outputs), len(tx.outputs)))
        self.xpubs = xpubs or {}
        self.version = version
        self.unknown = unknown or {}

    @classmethod
    def parse(cls, data):
        """
        Parse binary PSBT

        :param data: Serialized PSBT
        :type data: bytes

        :return PSBT:
        """
        if not isinstance(data, bytes):
            raise FormatError("PSBT data must be bytes")
        if not data.startswith(PSBT_MAGIC):
            raise FormatError("Invalid PSBT, magic bytes not found")
        s = BytesIO(data[len(PSBT_MAGIC):])
        try:
            tx = None
            xpubs = {}
            version = None
            unknown = {}
            for key_type, key_data, value, key in _read_map(s):
                if key_type == PSBT_GLOBAL_UNSIGNED_TX:
                    _check_keydata(key_type, key_data)
                    tx = Transaction.parse(value)
                    unsigned_raw = value
                elif key_type == PSBT_GLOBAL_XPUB:
                    _check_keydata(key_type, key_data, 78)
                    xpubs[key_data] = KeyOriginInfo.parse(value)
                elif key_type == PSBT_GLOBAL_VERSION:
                    _check_keydata(key_type, key_data)
                    if len(value) != 4:
                        raise FormatError("PSBT version must be 4 bytes")
                    version = int.from_bytes(value, 'little')
                    if version != 0:
                        raise FormatError("Unsupported PSBT version %d" % version)
                else:
                    unknown[key] = value
            if tx is None:
                raise FormatError("Invalid PSBT, unsigned transaction missing")
            if tx.has_witness:
                raise FormatError("Unsigned transaction in PSBT must not contain witness data")
            if unsigned_raw != tx.raw(include_witness=False):
                raise FormatError("Unsigned transaction in PSBT must be serialized without segwit marker and flag")
            inputs = [PSBTInput.parse(s) for _ in tx.inputs]
            outputs = [PSBTOutput.parse(s) for _ in tx.outputs]
        except EncodingError as e:
            raise FormatError("Invalid PSBT encoding: %s" % e)
        if s.read(1):
            raise FormatError("Invalid PSBT, data found after last output map")
        return cls(tx, inputs, outputs, xpubs=xpubs, version=version, unknown=unknown)

    @classmethod
    def from_base64(cls, data):
        """
        Parse base64 encoded PSBT

        :param data: Base64 string
        :type data: str, bytes

        :return PSBT:
        """
        try:
            raw = base64.b64decode(data.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError("Invalid base64 encoded PSBT: %s" % e)
        return cls.parse(raw)

    @classmethod
    def load(cls, source):
        """
        Load PSBT from a base64 encoded file, a binary file or from an inline base64 string

        :param source: Filename or base64 string
        :type source: str

        :return PSBT:
        """
        p = Path(source)
        try:
            is_file = p.is_file()
        except OSError:
            is_file = False
        if not is_file:
            return cls.from_base64(source)
        data = p.read_bytes()
        if data.startswith(PSBT_MAGIC):
            return cls.parse(data)
        try:
            return cls.from_base64(data.decode('ascii'))
        except UnicodeDecodeError:
            raise FormatError("File %s does not contain a binary or base64 encoded PSBT" % source)

    def serialize(self):
        """
        Serialize PSBT to binary format. Keys in each map are sorted, so equal PSBTs have equal serializations

        :return bytes:
        """
        pairs = [_key_value(PSBT_GLOBAL_UNSIGNED_TX, b'', self.tx.raw(include_witness=False))]
        for xpub, origin in self.xpubs.items():
            pairs.append(_key_value(PSBT_GLOBAL_XPUB, xpub, origin.serialize()))
        if self.version is not None:
            pairs.append(_key_value(PSBT_GLOBAL_VERSION, b'', self.version.to_bytes(4, 'little')))
        pairs += list(self.unknown.items())
        return PSBT_MAGIC + _write_map(pairs) + b''.join([i.serialize() for i in self.inputs]) + \
            b''.join([o.serialize() for o in self.outputs])

    def to_base64(self):
        return base64.b64encode(self.serialize()).decode('ascii')

    def save(self, filename, as_base64=True):
        """
        Write PSBT to file, as base64 text or in binary format

        :return Path:
        """
        p = Path(filename)
        if as_base64:
            p.write_text(self.to_base64())
        else:
            p.write_bytes(self.serialize())
        return p

    def copy(self):
        return PSBT.parse(self.serialize())

    def __eq__(self, other):
        if not isinstance(other, PSBT):
            return False
        return self.tx == other.tx and self.xpubs == other.xpubs and self.version == other.version and \
            self.unknown == other.unknown and self.inputs == other.inputs and self.outputs == other.outputs

    def __repr__(self):
        return "<PSBT(txid=%s, inputs=%d, outputs=%d)>" % (self.tx.txid, len(self.inputs), len(self.outputs))

    @property
    def txid(self):
        return self.tx.txid

    def signature_count(self, index=0):
        """
        Number of partial signatures on input with given index
        """
        return len(self.inputs[index].partial_sigs)

    def is_finalized(self):
        return all([i.is_finalized for i in self.inputs])

    def fee(self):
        """
        Transaction fee: total value of all witness UTXO's minus total output value

        :return int:
        """
        total = 0
        for n, inp in enumerate(self.inputs):
            if inp.witness_utxo is None:
                raise MissingInputMetadata("Witness UTXO of input %d missing, cannot calculate fee" % n, n)
            total += inp.witness_utxo.value
        return total - self.tx.output_total

    def sign(self, private_key, fingerprint, strict=None):
        """
        Sign all inputs which contain a BIP32 derivation with the given master key fingerprint.

        The private key must already be derived to the base path of the key origins, only the last non-hardened
        path level is derived here. Signatures are first created for all inputs and only added to the PSBT if
        no errors occurred.

        :param private_key: Extended private key at the base path as HDKey or extended key string
        :type private_key: HDKey, str
        :param fingerprint: Master key fingerprint of signer
        :type fingerprint: bytes, str
        :param strict: Raise KeyMismatch if derived key does not match the PSBT metadata. If False, log a warning and skip the input. Default is STRICT_SIGNING from config
        :type strict: bool

        :return int: Number of inputs signed
        """
        if strict is None:
            strict = STRICT_SIGNING
        if isinstance(private_key, TYPE_TEXT):
            private_key = HDKey(private_key)
        if not isinstance(private_key, HDKey) or not private_key.is_private:
            raise ConfigError("Extended private key required to sign PSBT")
        fingerprint = parse_fingerprint(fingerprint)

        signatures = []
        for n, inp in enumerate(self.inputs):
            entries = [(pub, origin) for pub, origin in sorted(inp.bip32_derivation.items(), key=lambda x: x[0])
                       if origin.fingerprint == fingerprint]
            if not entries:
                continue
            for public_key, origin in entries:
                if not origin.path or origin.path[-1] & HARDENED:
                    raise InvalidDerivationIndex("Key origin %s of input %d does not end with a non-hardened index" %
                                                 (origin, n))
                child = private_key.child_private(origin.path[-1])
                if child.public_byte != public_key:
                    msg = "Derived key %s for input %d does not match key %s in PSBT" % \
                          (child.public_hex, n, public_key.hex())
                    if strict:
                        raise KeyMismatch(msg)
                    _logger.warning(msg + ", skip input")
                    continue
                if inp.witness_script is None or inp.witness_utxo is None:
                    raise MissingInputMetadata("Witness script or witness UTXO missing for input %d" % n, n)
                if inp.witness_utxo.lock_script != p2wsh_script(inp.witness_script):
                    raise KeyMismatch("Witness script of input %d does not match its witness UTXO" % n)
                _, keys, _ = parse_multisig_script(inp.witness_script)
                if public_key not in keys:
                    raise KeyMismatch("Key %s not found in witness script of input %d" % (public_key.hex(), n))
                if inp.sighash_type is not None and inp.sighash_type != SIGHASH_ALL:
                    raise PSBTError("Only SIGHASH_ALL is supported, input %d requests %d" % (n, inp.sighash_type))
                sighash = self.tx.signature_hash(n, inp.witness_script, inp.witness_utxo.value, SIGHASH_ALL)
                sig = sign(sighash, child, SIGHASH_ALL)
                signatures.append((n, PartialSignature(public_key, sig.as_der_encoded())))

        for n, ps in signatures:
            self.inputs[n].partial_sigs[ps.public_key] = ps
            _logger.info("Signed input %d with key %s" % (n, ps.public_key.hex()))
        return len(set([n for n, _ in signatures]))

    def combine(self, other):
        """
        Merge signatures and metadata of another PSBT for the same unsigned transaction into this PSBT

        :param other: PSBT to merge
        :type other: PSBT

        :return PSBT: self
        """
        if not isinstance(other, PSBT):
            raise PSBTError("Can only combine with another PSBT object")
        if self.tx.raw(include_witness=False) != other.tx.raw(include_witness=False):
            raise PSBTError("Cannot combine PSBTs with different unsigned transactions (%s and %s)" %
                            (self.tx.txid, other.tx.txid))
        merged = self.copy()
        for n, (a, b) in enumerate(zip(merged.inputs, other.inputs)):
            for pub, ps in b.partial_sigs.items():
                if pub in a.partial_sigs and a.partial_sigs[pub] != ps:
                    raise PSBTError("Conflicting signatures for key %s on input %d" % (pub.hex(), n))
                a.partial_sigs[pub] = ps
            for pub, origin in b.bip32_derivation.items():
                if pub in a.bip32_derivation and a.bip32_derivation[pub] != origin:
                    raise PSBTError("Conflicting key origins for key %s on input %d" % (pub.hex(), n))
                a.bip32_derivation[pub] = origin
            for attr in ['non_witness_utxo', 'witness_utxo', 'sighash_type', 'redeem_script', 'witness_script',
                         'final_script_sig', 'final_script_witness']:
                if getattr(a, attr) is None:
                    setattr(a, attr, getattr(b, attr))
            for k, v in b.unknown.items():
                a.unknown.setdefault(k, v)
        for a, b in zip(merged.outputs, other.outputs):
            for pub, origin in b.bip32_derivation.items():
                a.bip32_derivation.setdefault(pub, origin)
            for attr in ['redeem_script', 'witness_script']:
                if getattr(a, attr) is None:
                    setattr(a, attr, getattr(b, attr))
            for k, v in b.unknown.items():
                a.unknown.setdefault(k, v)
        for xpub, origin in other.xpubs.items():
            merged.xpubs.setdefault(xpub, origin)
        for k, v in other.unknown.items():
            merged.unknown.setdefault(k, v)

        self.inputs = merged.inputs
        self.outputs = merged.outputs
        self.xpubs = merged.xpubs
        self.unknown = merged.unknown
        return self

    def _final_witness(self, n, threshold=None):
        inp = self.inputs[n]
        if inp.witness_script is None:
            raise MissingInputMetadata("Witness script missing for input %d, cannot finalize" % n, n)
        if inp.witness_utxo is None:
            raise MissingInputMetadata("Witness UTXO missing for input %d, cannot finalize" % n, n)
        m, keys, _ = parse_multisig_script(inp.witness_script)
        if threshold is not None and threshold != m:
            raise ConfigError("Threshold %d does not match %d-of-%d witness script of input %d" %
                              (threshold, m, len(keys), n))

        valid = {}
        for pub, ps in inp.partial_sigs.items():
            if pub not in keys:
                _logger.warning("Signature of key %s on input %d is not for a key in the witness script, ignored" %
                                (pub.hex(), n))
                continue
            try:
                sig = Signature.parse_bytes(ps.signature)
            except (BKeyError, EncodingError) as e:
                _logger.warning("Invalid signature for key %s on input %d ignored: %s" % (pub.hex(), n, e))
                continue
            digest = self.tx.signature_hash(n, inp.witness_script, inp.witness_utxo.value, sig.hash_type)
            if not sig.verify(digest, pub):
                _logger.warning("Signature for key %s on input %d does not verify, ignored" % (pub.hex(), n))
                continue
            valid[pub] = ps.signature
        if len(valid) < m:
            raise InsufficientSignatures(n, len(valid), m)

        # Signatures must appear in the order of their keys in the witness script
        signatures = [valid[k] for k in keys if k in valid][:m]
        return [b''] + signatures + [inp.witness_script]

    def finalize(self, threshold=None):
        """
        Finalize all inputs: create the witness stack from the partial signatures and remove signing metadata.

        The witness stack for each input consists of an empty item, the signatures in the order of the keys in the
        witness script and the witness script itself. If more signatures than required are available the
        signatures of the lowest keys are used.

        All inputs are checked before the PSBT is updated, so if an exception is raised the PSBT is left unchanged.

        :param threshold: Number of signatures required. Must match the witness script, leave empty to read from script
        :type threshold: int

        :return PSBT: self
        """
        witnesses = []
        for n, inp in enumerate(self.inputs):
            if inp.is_finalized:
                witnesses.append(None)
                continue
            witnesses.append(self._final_witness(n, threshold))

        for inp, witness in zip(self.inputs, witnesses):
            if witness is None:
                continue
            inp.final_script_witness = witness
            inp.partial_sigs = {}
            inp.bip32_derivation = {}
            inp.witness_script = None
            inp.sighash_type = None
        _logger.info("Finalized PSBT for transaction %s" % self.tx.txid)
        return self

    def extract_transaction(self):
        """
        Create the final transaction from a finalized PSBT

        :return Transaction:
        """
        if not self.is_finalized():
            raise PSBTError("Cannot extract transaction, PSBT is not finalized")
        tx = Transaction.parse(self.tx.raw(include_witness=False))
        for ti, inp in zip(tx.inputs, self.inputs):
            ti.witnesses = list(inp.final_script_witness or [])
            ti.unlocking_script = inp.final_script_sig or b''
            if inp.witness_utxo is not None:
                ti.value = inp.witness_utxo.value
        return tx

    def info(self, network=DEFAULT_NETWORK):
        """
        Prints PSBT information to standard output
        """
        network = Network(network)
        print("PSBT for transaction %s" % self.tx.txid)
        print("Version: %d, locktime: %d" % (self.tx.version, self.tx.locktime))
        print("Inputs")
        for n, (ti, inp) in enumerate(zip(self.tx.inputs, self.inputs)):
            value = inp.witness_utxo.value if inp.witness_utxo else None
            print("- %d: %s:%d %s" % (n, ti.prev_txid.hex(), ti.output_n, network.print_value(value)))
            if inp.is_finalized:
                print("  finalized, witness items: %d" % len(inp.final_script_witness or []))
            else:
                print("  signatures: %d" % len(inp.partial_sigs))
                for pub, origin in sorted(inp.bip32_derivation.items()):
                    signed = 'signed' if pub in inp.partial_sigs else ''
                    print("  %s [%s] %s" % (pub.hex(), origin, signed))
        print("Outputs")
        for n, (to, outp) in enumerate(zip(self.tx.outputs, self.outputs)):
            change = ' (change)' if outp.bip32_derivation else ''
            print("- %d: %s %s%s" % (n, to.address(network) or to.lock_script.hex(), network.print_value(to.value),
                                     change))
        try:
            print("Fee: %s" % network.print_value(self.fee()))
        except MissingInputMetadata:
            pass
        print("Finalized: %s" % self.is_finalized())


def sign_psbt(master_private_key, fingerprint, psbt, strict=None):
    """
    Sign PSBT with a cosigner key. Wrapper for the :func:`PSBT.sign` method

    :param master_private_key: Extended private key at the base path of the key origins
    :type master_private_key: HDKey, str
    :param fingerprint: Master key fingerprint of cosigner
    :type fingerprint: bytes, str
    :param psbt: Partially signed transaction
    :type psbt: PSBT
    :param strict: Raise error on key mismatch, default from config
    :type strict: bool

    :return tuple: (PSBT, number of inputs signed)
    """
    count = psbt.sign(master_private_key, fingerprint, strict)
    return psbt, count


def combine_psbts(psbts):
    """
    Combine list of PSBTs for the same transaction into a new PSBT

    :param psbts: List of PSBT objects
    :type psbts: list of PSBT

    :return PSBT:
    """
    if not psbts:
        raise PSBTError("Please provide at least one PSBT to combine")
    combined = psbts[0].copy()
    for p in psbts[1:]:
        combined.combine(p)
    return combined


def finalize_psbt(psbt, threshold=None):
    """
    Finalize PSBT and return the final transaction. Wrapper for :func:`PSBT.finalize` and
    :func:`PSBT.extract_transaction`

    :return Transaction:
    """
    return psbt.finalize(threshold).extract_transaction()
