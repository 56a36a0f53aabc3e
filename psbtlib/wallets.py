# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    WALLETS - Cosigner key records, multisig address derivation and unsigned PSBT creation
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
from psbtlib.encoding import *
from psbtlib.errors import ConfigError, InvalidDerivationIndex, KeyMismatch, NetworkMismatch
from psbtlib.keys import HDKey, KeyOriginInfo, parse_path, parse_fingerprint, path_to_string
from psbtlib.networks import Network, wif_prefix_search
from psbtlib.psbt import PSBT, sign_psbt
from psbtlib.scripts import multisig_script, p2wsh_script, script_to_address, address_to_script
from psbtlib.transactions import Transaction, Output, TransactionError


_logger = logging.getLogger(__name__)


class KeyRecord(object):
    """
    Key material of one cosigner, as exchanged in JSON key files:
    {name, xprv, xpub, fingerprint, derivation_path}

    The extended keys are derived to the BIP48 base path, the fingerprint is the fingerprint of the master key.
    Only the xpub, fingerprint and path are shared with the other cosigners, the xprv stays with the signer.
    """

    @classmethod
    def generate(cls, name, network=DEFAULT_NETWORK, seed=None, account=0):
        """
        Generate a new cosigner key. The master key is created from the provided seed or from random data, and
        derived to the BIP48 P2WSH multisig path.

        >>> kr = KeyRecord.generate('key_a', 'regtest', seed='000102030405060708090a0b0c0d0e0f')
        >>> kr.fingerprint.hex(), kr.derivation_path
        ('3442193e', "m/48'/1'/0'/2'")

        :param name: Name of key, i.e. key_a
        :type name: str
        :param network: Network name. Default is DEFAULT_NETWORK
        :type network: str
        :param seed: Seed as bytes or hexstring. Leave empty to generate a random key
        :type seed: bytes, str
        :param account: BIP48 account ID, default is 0
        :type account: int

        :return KeyRecord:
        """
        network = Network(network).name
        if seed is not None:
            master = HDKey.from_seed(seed, network=network)
        else:
            master = HDKey(network=network)
        path = bip48_key_path(network, account)
        base = master.subkey_for_path(path)
        _logger.info("Generated key %s with fingerprint %s" % (name, master.fingerprint.hex()))
        return cls(name, base.wif_private(), base.wif_public(), master.fingerprint, path, network=network)

    @classmethod
    def load(cls, filename, network=None):
        """
        Load key record from JSON file

        :param filename: Path to key file
        :type filename: str, Path
        :param network: Expected network. Raises NetworkMismatch if keys belong to other network
        :type network: str

        :return KeyRecord:
        """
        try:
            data = json.loads(Path(filename).read_text())
        except json.decoder.JSONDecodeError as e:
            raise FormatError("Invalid JSON in key file %s: %s" % (filename, e))
        return cls.from_dict(data, network)

    @classmethod
    def from_dict(cls, data, network=None):
        if not isinstance(data, dict):
            raise FormatError("Key record must be a JSON object")
        missing = [f for f in ['name', 'xpub', 'fingerprint', 'derivation_path'] if not data.get(f)]
        if missing:
            raise FormatError("Key record is missing field(s): %s" % ', '.join(missing))
        return cls(data['name'], data.get('xprv'), data['xpub'], data['fingerprint'], data['derivation_path'],
                   network=network)

    def __init__(self, name, xprv, xpub, fingerprint, derivation_path, network=None):
        """
        Create key record. Extended keys are validated and must belong to the same network.

        :param name: Name of cosigner key
        :type name: str
        :param xprv: Extended private key at derivation path. Can be None for watch-only records
        :type xprv: str, None
        :param xpub: Extended public key at derivation path
        :type xpub: str
        :param fingerprint: Fingerprint of master key
        :type fingerprint: bytes, str
        :param derivation_path: Path from master key to extended keys, i.e. m/48'/1'/0'/2'
        :type derivation_path: str
        :param network: Network name. Derived from xpub if not specified
        :type network: str
        """
        self.name = name
        self.fingerprint = parse_fingerprint(fingerprint)
        self.derivation_path = path_to_string(parse_path(derivation_path))
        self.public_key = HDKey(xpub, network=network)
        if self.public_key.is_private:
            raise ConfigError("Key record xpub field of %s contains a private key" % name)
        self.network = self.public_key.network
        self.xprv = xprv
        self.xpub = xpub
        if xprv:
            private_key = HDKey(xprv, network=self.network)
            if private_key.public_byte != self.public_key.public_byte or private_key.chain != self.public_key.chain:
                raise KeyMismatch("Private and public key of key record %s do not match" % name)

    def __repr__(self):
        return "<KeyRecord(name=%s, fingerprint=%s, network=%s)>" % (self.name, self.fingerprint.hex(),
                                                                     self.network.name)

    @property
    def private_key(self):
        if not self.xprv:
            raise ConfigError("Key record %s does not contain a private key" % self.name)
        return HDKey(self.xprv, network=self.network)

    def as_dict(self, include_private=True):
        return {
            'name': self.name,
            'xprv': self.xprv if include_private else None,
            'xpub': self.xpub,
            'fingerprint': self.fingerprint.hex(),
            'derivation_path': self.derivation_path,
        }

    def save(self, filename=None, output_dir='.'):
        """
        Write key record to JSON file. Default filename is <name>.json in output_dir

        :return Path: Filename
        """
        p = Path(filename) if filename else Path(output_dir, '%s.json' % self.name)
        p.write_text(json.dumps(self.as_dict(), indent=2))
        return p

    def key_origin(self, network=None):
        return KeyOrigin(self.name, self.xpub, self.fingerprint, self.derivation_path,
                         network=network or self.network)

    def sign(self, psbt, strict=None):
        """
        Sign PSBT with the private key of this record

        :return int: Number of inputs signed
        """
        _, count = sign_psbt(self.private_key, self.fingerprint, psbt, strict)
        return count


class KeyOrigin(object):
    """
    Extended public key of a cosigner with its master key fingerprint and derivation path. Immutable.
    """

    def __init__(self, name, public_key, fingerprint, derivation_path, network=None):
        if isinstance(public_key, HDKey):
            if network is None:
                network = public_key.network
            public_key = public_key.wif_public()
        public_key = HDKey(public_key, network=network)
        if public_key.is_private:
            public_key = public_key.public()
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'public_key', public_key)
        object.__setattr__(self, 'fingerprint', parse_fingerprint(fingerprint))
        object.__setattr__(self, 'derivation_path', tuple(parse_path(derivation_path)))

    def __setattr__(self, key, value):
        raise AttributeError("KeyOrigin is immutable")

    def __repr__(self):
        return "<KeyOrigin(name=%s, fingerprint=%s, path=%s)>" % \
               (self.name, self.fingerprint.hex(), path_to_string(self.derivation_path))

    def __eq__(self, other):
        if not isinstance(other, KeyOrigin):
            return False
        return self.public_key == other.public_key and self.fingerprint == other.fingerprint and \
            self.derivation_path == other.derivation_path

    def __hash__(self):
        return hash((self.public_key.public_byte, self.fingerprint))

    def child_key(self, index):
        """
        Derive non-hardened child public key at index

        :return HDKey:
        """
        if not isinstance(index, int) or not 0 <= index < HARDENED:
            raise InvalidDerivationIndex("Derivation index must be a non-hardened index between 0 and 2^31-1, "
                                         "not %s" % index)
        return self.public_key.child_public(index)

    def key_origin_info(self, index=None):
        """
        Key origin info of this key, or of its child at index if index is specified

        :return KeyOriginInfo:
        """
        path = list(self.derivation_path) + ([index] if index is not None else [])
        return KeyOriginInfo(self.fingerprint, path)

    def descriptor_key(self):
        """
        Key expression as used in output descriptors: [fingerprint/path]xpub/*

        :return str:
        """
        return "[%s]%s/*" % (self.key_origin_info(), self.public_key.wif_public())


class Utxo(object):
    """
    Unspent transaction output to spend: txid, output number, value and optionally the locking script
    """

    @classmethod
    def from_string(cls, utxo):
        """
        Parse UTXO string in format txid:output_n:value

        >>> Utxo.from_string('%s:0:100000000' % ('00' * 31 + '01')).value
        100000000

        :return Utxo:
        """
        items = utxo.strip().split(':')
        if len(items) != 3:
            raise ConfigError("UTXO must be specified as txid:output_n:value")
        try:
            return cls(items[0], int(items[1]), int(items[2]))
        except ValueError as e:
            raise ConfigError("Invalid UTXO %s: %s" % (utxo, e))

    def __init__(self, txid, output_n, value, script=None):
        self.txid = to_bytes(txid)
        if len(self.txid) != 32:
            raise ConfigError("UTXO transaction ID must be 32 bytes")
        if not 0 <= output_n <= 0xffffffff:
            raise ConfigError("UTXO output number %d out of range" % output_n)
        if not 0 < value <= MAX_MONEY:
            raise ConfigError("UTXO value must be between 1 and %d" % MAX_MONEY)
        self.output_n = output_n
        self.value = value
        self.script = to_bytes(script) if script is not None else None

    def __repr__(self):
        return "<Utxo(%s:%d, value=%d)>" % (self.txid.hex(), self.output_n, self.value)


class DerivedAddress(object):
    """
    Multisig address at a derivation index, with its witness script and the key origins of all cosigner keys
    """

    def __init__(self, index, address, witness_script, script_pubkey, public_keys, key_origins):
        self.index = index
        self.address = address
        self.witness_script = witness_script
        self.script_pubkey = script_pubkey
        self.public_keys = public_keys
        self.key_origins = key_origins

    def __repr__(self):
        return "<DerivedAddress(index=%d, address=%s)>" % (self.index, self.address)

    def __eq__(self, other):
        if not isinstance(other, DerivedAddress):
            return False
        return vars(self) == vars(other)


class MultisigWallet(object):
    """
    Threshold multisignature P2WSH wallet, defined by the key origins of all cosigners and the number of
    signatures required.

    Addresses use sorted multisig scripts: keys are sorted at every derivation index, so the order of the key origins
    does not matter.
    """

    @classmethod
    def from_key_records(cls, records, threshold=None, network=None, cosigners=None):
        """
        Create wallet from list of KeyRecord objects

        :return MultisigWallet:
        """
        network = network or (records[0].network.name if records else DEFAULT_NETWORK)
        return cls([r.key_origin(network) for r in records], threshold, network, cosigners)

    @classmethod
    def from_key_files(cls, filenames, threshold=None, network=None, cosigners=None):
        """
        Create wallet from list of JSON key files

        :return MultisigWallet:
        """
        return cls.from_key_records([KeyRecord.load(fn, network) for fn in filenames], threshold, network, cosigners)

    def __init__(self, origins, threshold=None, network=None, cosigners=None):
        """
        Create a new multisig wallet

        :param origins: List of KeyOrigin objects of all cosigners
        :type origins: list of KeyOrigin
        :param threshold: Number of signatures required, default is DEFAULT_THRESHOLD
        :type threshold: int
        :param network: Network name, default is DEFAULT_NETWORK
        :type network: str, Network
        :param cosigners: Required number of cosigners. Leave empty to accept any number of key origins
        :type cosigners: int
        """
        self.origins = list(origins)
        self.threshold = DEFAULT_THRESHOLD if threshold is None else threshold
        self.network = Network(network or DEFAULT_NETWORK)
        if cosigners is not None and len(self.origins) != cosigners:
            raise ConfigError("Expected %d cosigner keys, but %d provided" % (cosigners, len(self.origins)))
        if not 1 <= len(self.origins) <= MAX_MULTISIG_KEYS:
            raise ConfigError("Number of cosigner keys must be between 1 and %d" % MAX_MULTISIG_KEYS)
        if not isinstance(self.threshold, int) or not 1 <= self.threshold <= len(self.origins):
            raise ConfigError("Threshold must be between 1 and the number of cosigners (%d)" % len(self.origins))
        fingerprints = [o.fingerprint for o in self.origins]
        if len(set(fingerprints)) != len(fingerprints):
            raise ConfigError("Fingerprints of cosigner keys must be unique")
        for o in self.origins:
            networks = [m['network'] for m in wif_prefix_search(o.public_key.wif_public())]
            if self.network.name not in networks:
                raise NetworkMismatch("Key %s of %s does not belong to network %s" %
                                      (o.fingerprint.hex(), o.name, self.network.name))

    def __repr__(self):
        return "<MultisigWallet(%d-of-%d, network=%s)>" % (self.threshold, len(self.origins), self.network.name)

    def derive_at(self, index):
        """
        Derive the multisig address at given non-hardened index.

        Child keys of all cosigners are sorted by their serialized public key and used to create the witness script.

        :param index: Address index
        :type index: int

        :return DerivedAddress:
        """
        if not isinstance(index, int) or not 0 <= index < HARDENED:
            raise InvalidDerivationIndex("Derivation index must be a non-hardened index between 0 and 2^31-1, "
                                         "not %s" % index)
        key_origins = {}
        for origin in self.origins:
            key_origins[origin.child_key(index).public_byte] = origin.key_origin_info(index)
        if len(key_origins) != len(self.origins):
            raise ConfigError("Duplicate public keys found at index %d" % index)
        public_keys = sorted(key_origins)
        witness_script = multisig_script(self.threshold, public_keys)
        script_pubkey = p2wsh_script(witness_script)
        address = script_to_address(script_pubkey, self.network)
        return DerivedAddress(index, address, witness_script, script_pubkey, public_keys, key_origins)

    def address(self, index=0):
        return self.derive_at(index).address

    def descriptor(self):
        """
        Output descriptor of this wallet with checksum, i.e. wsh(sortedmulti(2,[fp/48'/1'/0'/2']tpub.../*,...))#...

        :return str:
        """
        desc = "wsh(sortedmulti(%d,%s))" % (self.threshold, ','.join([o.descriptor_key() for o in self.origins]))
        return desc + '#' + descriptor_checksum(desc)

    def create_psbt(self, utxo, outputs, signing_index=0, change_index=None, version=DEFAULT_TX_VERSION, locktime=0,
                    sequence=SEQUENCE_REPLACE_BY_FEE):
        """
        Create unsigned PSBT which spends an UTXO of this wallet.

        The input contains the witness UTXO, the witness script and the key origins of all cosigner keys, so each
        cosigner can find and sign the input with its own key.

        :param utxo: Unspent output of this wallet at signing_index
        :type utxo: Utxo
        :param outputs: List of (value, address or locking script) tuples
        :type outputs: list of tuple
        :param signing_index: Derivation index of the address which holds the UTXO
        :type signing_index: int
        :param change_index: Derivation index of change address. Outputs to this address get key origin information
        :type change_index: int
        :param version: Transaction version, default is 2
        :type version: int
        :param locktime: Transaction locktime, default is 0
        :type locktime: int
        :param sequence: Input sequence, default enables replace-by-fee
        :type sequence: int

        :return PSBT:
        """
        derived = self.derive_at(signing_index)
        if utxo.script is not None and utxo.script != derived.script_pubkey:
            raise KeyMismatch("UTXO locking script does not match wallet address at index %d" % signing_index)
        if not outputs:
            raise TransactionError("Please specify at least one output")

        tx = Transaction(version=version, locktime=locktime)
        tx.add_input(utxo.txid, utxo.output_n, sequence=sequence, value=utxo.value)
        for value, destination in outputs:
            if isinstance(destination, bytes):
                lock_script = destination
            else:
                lock_script = address_to_script(destination, self.network)
            tx.add_output(value, lock_script)
        if tx.output_total > utxo.value:
            raise TransactionError("Total output value %d exceeds UTXO value %d" % (tx.output_total, utxo.value))

        psbt = PSBT(tx)
        psbt.inputs[0].witness_utxo = Output(utxo.value, derived.script_pubkey)
        psbt.inputs[0].witness_script = derived.witness_script
        psbt.inputs[0].bip32_derivation = dict(derived.key_origins)
        for o in self.origins:
            psbt.xpubs[base58check_decode(o.public_key.wif_public())] = o.key_origin_info()

        if change_index is not None:
            change = self.derive_at(change_index)
            for n, to in enumerate(tx.outputs):
                if to.lock_script == change.script_pubkey:
                    psbt.outputs[n].witness_script = change.witness_script
                    psbt.outputs[n].bip32_derivation = dict(change.key_origins)
        _logger.info("Created PSBT for transaction %s spending %s:%d" % (tx.txid, utxo.txid.hex(), utxo.output_n))
        return psbt

    def create_spend(self, utxo, destination, amount, fee, signing_index=0, change_index=1):
        """
        Create unsigned PSBT which sends amount to destination and returns the change to the wallet.
        The change is the UTXO value minus amount and fee, and cannot be negative. If there is no change the change
        output is omitted.

        :param utxo: Unspent output of this wallet at signing_index
        :type utxo: Utxo
        :param destination: Destination address or locking script
        :type destination: str, bytes
        :param amount: Amount to send in satoshi
        :type amount: int
        :param fee: Transaction fee in satoshi
        :type fee: int
        :param signing_index: Derivation index of the address which holds the UTXO
        :type signing_index: int
        :param change_index: Derivation index of change address
        :type change_index: int

        :return PSBT:
        """
        if amount <= 0:
            raise TransactionError("Amount must be a positive number")
        if fee < 0:
            raise TransactionError("Fee cannot be negative")
        change = utxo.value - amount - fee
        if change < 0:
            raise TransactionError("Insufficient funds: UTXO value %d is less than amount %d plus fee %d" %
                                   (utxo.value, amount, fee))
        outputs = [(amount, destination)]
        if change:
            outputs.append((change, self.derive_at(change_index).script_pubkey))
        return self.create_psbt(utxo, outputs, signing_index, change_index=change_index if change else None)
