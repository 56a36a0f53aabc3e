# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    Public key cryptography, BIP32 hierarchical deterministic keys and signatures
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

import hmac
from io import BytesIO

from psbtlib.networks import Network, wif_prefix_search
from psbtlib.config.secp256k1 import *
from psbtlib.encoding import *
from psbtlib.errors import ConfigError, InvalidDerivationIndex, NetworkMismatch

if USE_FASTECDSA:
    from fastecdsa import ecdsa as fastecdsa_ecdsa
    from fastecdsa.curve import secp256k1 as fastecdsa_secp256k1
    from fastecdsa import keys as fastecdsa_keys
    from fastecdsa import point as fastecdsa_point
else:
    import ecdsa

    secp256k1_curve = ecdsa.ellipticcurve.CurveFp(secp256k1_p, secp256k1_a, secp256k1_b)
    secp256k1_generator = ecdsa.ellipticcurve.Point(secp256k1_curve, secp256k1_Gx, secp256k1_Gy, secp256k1_n)

_logger = logging.getLogger(__name__)


class BKeyError(FormatError):
    """
    Handle Key class Exceptions

    """
    pass


def parse_path(path):
    """
    Convert a BIP32 key path to a list of child index numbers. Hardened levels can be marked with ', h or H.

    >>> parse_path("m/48'/1'/0'/2'")
    [2147483696, 2147483649, 2147483648, 2147483650]
    >>> parse_path("0/5")
    [0, 5]

    :param path: Key path as string or list of strings and integers
    :type path: str, list

    :return list of int:
    """
    if isinstance(path, TYPE_TEXT):
        path = path.strip().split('/')
    if path and path[0] in ['m', 'M']:
        path = path[1:]
    indices = []
    for item in path:
        if isinstance(item, int):
            index = item
        else:
            item = item.strip()
            if not item:
                raise ConfigError("Could not parse path. Index is empty.")
            hardened = item[-1] in "'hH"
            if hardened:
                item = item[:-1]
            if not item.isdigit():
                raise ConfigError("Could not parse path. Index '%s' is not a positive integer." % item)
            index = int(item)
            if index >= HARDENED:
                raise ConfigError("Could not parse path. Index %d too large, use hardened notation." % index)
            if hardened:
                index |= HARDENED
        if not 0 <= index <= 0xffffffff:
            raise ConfigError("Could not parse path. Index %d out of range." % index)
        indices.append(index)
    return indices


def path_to_string(indices, prefix='m'):
    """
    Convert list of child index numbers to a key path string

    >>> path_to_string([2147483696, 2147483649, 2147483648, 2147483650, 0])
    "m/48'/1'/0'/2'/0"

    :param indices: List of child index numbers
    :type indices: list of int
    :param prefix: Path prefix, default is 'm'. Use an empty string to omit the prefix
    :type prefix: str

    :return str:
    """
    levels = ['%d\'' % (i & ~HARDENED) if i & HARDENED else str(i) for i in indices]
    return '/'.join(([prefix] if prefix else []) + levels)


def parse_fingerprint(fingerprint):
    """
    Convert a key fingerprint in hex or bytes format to 4 bytes

    >>> parse_fingerprint('AA11BB22')
    b'\\xaa\\x11\\xbb"'

    :param fingerprint: Fingerprint as hexadecimal string or bytes
    :type fingerprint: str, bytes

    :return bytes:
    """
    if isinstance(fingerprint, TYPE_TEXT):
        try:
            fingerprint = bytes.fromhex(fingerprint)
        except ValueError:
            raise ConfigError("Fingerprint '%s' is not a hexadecimal string" % fingerprint)
    if not isinstance(fingerprint, bytes) or len(fingerprint) != 4:
        raise ConfigError("Fingerprint must be 4 bytes or 8 hexadecimal characters")
    return fingerprint


class KeyOriginInfo(object):
    """
    Master key fingerprint and derivation path of a key, as used in partially signed transactions and descriptors
    """

    def __init__(self, fingerprint, path):
        self.fingerprint = parse_fingerprint(fingerprint)
        self.path = parse_path(path)

    @classmethod
    def parse(cls, data):
        """
        Parse binary key origin: 4 byte fingerprint followed by 32 bit little-endian path indices

        :param data: Serialized key origin
        :type data: bytes

        :return KeyOriginInfo:
        """
        if len(data) < 4 or len(data) % 4:
            raise FormatError("Invalid key origin length %d, must be a multiple of 4 bytes" % len(data))
        path = [int.from_bytes(data[i:i + 4], 'little') for i in range(4, len(data), 4)]
        return cls(data[:4], path)

    @classmethod
    def from_string(cls, origin):
        """
        Parse key origin string as used in descriptors, i.e. "aa11bb22/48'/1'/0'/2'"

        :param origin: Key origin string
        :type origin: str

        :return KeyOriginInfo:
        """
        items = origin.strip('[]').split('/')
        return cls(items[0], items[1:])

    def serialize(self):
        return self.fingerprint + b''.join([i.to_bytes(4, 'little') for i in self.path])

    def child(self, index):
        """
        Key origin of non-hardened child at index
        """
        return KeyOriginInfo(self.fingerprint, self.path + [index])

    @property
    def path_str(self):
        return path_to_string(self.path)

    def __str__(self):
        return '/'.join([self.fingerprint.hex()] + ([path_to_string(self.path, '')] if self.path else []))

    def __repr__(self):
        return "<KeyOriginInfo(%s)>" % str(self)

    def __eq__(self, other):
        if not isinstance(other, KeyOriginInfo):
            return False
        return self.fingerprint == other.fingerprint and self.path == other.path

    def __hash__(self):
        return hash(self.serialize())


class Key(object):
    """
    Class to generate, import and convert public and private keys on the secp256k1 curve.

    Only compressed public keys are used when serializing, as required for segwit scripts.
    """

    def __init__(self, import_key=None, network=None, is_private=None):
        """
        Initialize a Key object. Import key can be a 32 byte private key, a 33 byte compressed or 65 byte
        uncompressed public key, as bytes or hexadecimal string, or a secret number.

        If import key is not specified a new private key will be generated.

        >>> Key(1).public_hex
        '0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798'

        :param import_key: Key to import
        :type import_key: str, bytes, int
        :param network: Network name, default is DEFAULT_NETWORK
        :type network: str, Network
        :param is_private: Force is_private flag. Leave empty to derive from import key
        :type is_private: bool
        """
        self.network = Network(network or DEFAULT_NETWORK)
        self.secret = None
        self.private_byte = None
        if import_key is None:
            import_key = int.from_bytes(os.urandom(32), 'big') % (secp256k1_n - 1) + 1
        if isinstance(import_key, int):
            import_key = import_key.to_bytes(32, 'big')
        elif isinstance(import_key, TYPE_TEXT):
            try:
                import_key = bytes.fromhex(import_key)
            except ValueError:
                raise BKeyError("Unrecognised key format, expected hexadecimal key string")
        if not isinstance(import_key, bytes):
            raise BKeyError("Unrecognised key type %s" % type(import_key))

        if len(import_key) == 32 and is_private is not False:
            self.secret = int.from_bytes(import_key, 'big')
            if not 0 < self.secret < secp256k1_n:
                raise BKeyError("Private key must be a number between 1 and secp256k1_n")
            self.private_byte = import_key
            point = ec_point(self.secret)
            if USE_FASTECDSA:
                self._x, self._y = point.x, point.y
            else:
                self._x, self._y = point.x(), point.y()
        elif len(import_key) == 33 and import_key[:1] in [b'\2', b'\3']:
            self._x = int.from_bytes(import_key[1:], 'big')
            y_squared = (pow(self._x, 3, secp256k1_p) + secp256k1_b) % secp256k1_p
            y = mod_sqrt(y_squared)
            if (y * y) % secp256k1_p != y_squared:
                raise BKeyError("Invalid public key, point is not on secp256k1 curve")
            if (y % 2) != (import_key[0] - 2):
                y = secp256k1_p - y
            self._y = y
        elif len(import_key) == 65 and import_key[:1] == b'\4':
            self._x = int.from_bytes(import_key[1:33], 'big')
            self._y = int.from_bytes(import_key[33:], 'big')
            if (self._y * self._y - pow(self._x, 3, secp256k1_p) - secp256k1_b) % secp256k1_p:
                raise BKeyError("Invalid public key, point is not on secp256k1 curve")
        else:
            raise BKeyError("Unrecognised key format, length %d" % len(import_key))

        self.is_private = self.private_byte is not None
        self.public_byte = (b'\3' if self._y % 2 else b'\2') + self._x.to_bytes(32, 'big')
        self.public_hex = self.public_byte.hex()
        self.private_hex = self.private_byte.hex() if self.is_private else None

    def __repr__(self):
        return "<Key(public_hex=%s, network=%s)>" % (self.public_hex, self.network.name)

    def __str__(self):
        return self.public_hex

    def __bytes__(self):
        return self.public_byte

    def __len__(self):
        return len(self.public_byte)

    def __eq__(self, other):
        if not isinstance(other, Key):
            return False
        return self.public_byte == other.public_byte and self.private_byte == other.private_byte

    def __hash__(self):
        return hash(self.public_byte)

    @property
    def x(self):
        return self._x

    @property
    def y(self):
        return self._y

    @property
    def public_uncompressed_byte(self):
        return b'\4' + self._x.to_bytes(32, 'big') + self._y.to_bytes(32, 'big')

    @property
    def hash160(self):
        """
        Get public key in RIPEMD-160 + SHA256 format

        :return bytes:
        """
        return hash160(self.public_byte)

    def public_point(self):
        """
        Get public key point on Elliptic curve

        :return tuple: (x, y) point
        """
        return self._x, self._y

    def public(self):
        """
        Get public version of current key. Removes all private information from Key object

        :return Key:
        """
        return Key(self.public_byte, network=self.network)


class HDKey(Key):
    """
    Class for Hierarchical Deterministic keys as defined in BIP0032

    Besides a private or public key a HD Key has a chain code, allowing to create
    a structure of related keys.

    The key structure for native segwit multisignature wallets is defined in BIP0048.
    """

    @staticmethod
    def from_seed(import_seed, network=DEFAULT_NETWORK):
        """
        Used by class init function, import key from seed

        >>> k = HDKey.from_seed('000102030405060708090a0b0c0d0e0f', network='bitcoin')
        >>> k.wif_public()
        'xpub661MyMwAqRbcFtXgS5sYJABqqG9YLmC4Q1Rdap9gSE8NqtwybGhePY2gZ29ESFjqJoCu1Rupje8YtGqsefD265TMg7usUDFdp6W1EGMcet8'

        :param import_seed: Private key seed as bytes or hexstring
        :type import_seed: str, bytes
        :param network: Network to use
        :type network: str, Network

        :return HDKey:
        """
        seed = to_bytes(import_seed)
        i = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        key = i[:32]
        chain = i[32:]
        key_int = int.from_bytes(key, 'big')
        if key_int >= secp256k1_n or key_int == 0:
            raise BKeyError("Key int value cannot be zero or greater than secp256k1_n")
        return HDKey(key=key, chain=chain, network=network)

    def __init__(self, import_key=None, key=None, chain=None, depth=0, parent_fingerprint=b'\0\0\0\0',
                 child_index=0, is_private=True, network=None):
        """
        Hierarchical Deterministic Key class init function.

        If no import_key or key is specified a key will be generated with the systems cryptographically random
        function. Import key can be an extended public or private key, i.e. xpub, xprv, tpub, tprv, Zpub or Vpub.

        >>> xprv = 'xprv9s21ZrQH143K3QTDL4LXw2F7HEK3wJUD2nW2nRk4stbPy6cq3jPPqjiChkVvvNKmPGJxWUtg6LnF5kejMRNNU3TGtRBeJgk33yuGBxrMPHi'
        >>> k = HDKey(xprv)
        >>> k.fingerprint.hex()
        '3442193e'

        :param import_key: Extended key to import
        :type import_key: str
        :param key: Private or public key (length 32 or 33)
        :type key: bytes
        :param chain: A chain code (length 32)
        :type chain: bytes
        :param depth: Level of depth in BIP32 key path
        :type depth: int
        :param parent_fingerprint: 4-byte fingerprint of parent
        :type parent_fingerprint: bytes
        :param child_index: Index number of child as integer
        :type child_index: int
        :param is_private: True for private, False for public key. Default is True
        :type is_private: bool
        :param network: Network name. Derived from import_key if possible
        :type network: str, Network
        """
        if isinstance(import_key, Network):
            raise BKeyError("Network must be specified as keyword argument")
        if import_key is not None:
            key, chain, depth, parent_fingerprint, child_index, is_private, network = \
                self._parse_extended_key(import_key, network)
        elif key is None:
            seed = os.urandom(64)
            i = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
            key, chain = i[:32], i[32:]
            is_private = True
        if not chain or len(chain) != 32:
            raise BKeyError("Chain code of 32 bytes required")
        if is_private and len(key) != 32:
            raise BKeyError("Private key must be 32 bytes")
        if not is_private and len(key) != 33:
            raise BKeyError("Public key must be 33 bytes in compressed format")
        super(HDKey, self).__init__(key, network=network, is_private=is_private)
        self.chain = chain
        self.depth = depth
        self.parent_fingerprint = parent_fingerprint
        self.child_index = child_index

    @staticmethod
    def _parse_extended_key(extended_key, network=None):
        """
        Decode extended key string and check checksum, version prefix and network

        :return tuple: key, chain, depth, parent_fingerprint, child_index, is_private, network
        """
        if not isinstance(extended_key, TYPE_TEXT):
            raise BKeyError("Extended key must be a base58 encoded string")
        try:
            data = base58check_decode(extended_key.strip())
        except EncodingError:
            raise BKeyError("Invalid extended key checksum")
        if len(data) != 78:
            raise BKeyError("Invalid extended key length %d, expected 78 bytes" % len(data))
        matches = wif_prefix_search(data[:4].hex())
        if not matches:
            raise BKeyError("Unknown extended key version prefix %s" % data[:4].hex())
        networks = [m['network'] for m in matches]
        if network is not None:
            network = network.name if isinstance(network, Network) else network
            if network not in networks:
                raise NetworkMismatch("Extended key %s... belongs to network(s) %s, not to %s" %
                                      (extended_key[:8], ', '.join(networks), network))
        elif DEFAULT_NETWORK in networks:
            network = DEFAULT_NETWORK
        else:
            network = networks[0]
        is_private = matches[0]['is_private']
        depth = data[4]
        parent_fingerprint = data[5:9]
        child_index = int.from_bytes(data[9:13], 'big')
        chain = data[13:45]
        key = data[45:78]
        if depth == 0 and (parent_fingerprint != b'\0\0\0\0' or child_index):
            raise BKeyError("Master key with depth 0 cannot have a parent fingerprint or child index")
        if is_private:
            if key[:1] != b'\0':
                raise BKeyError("Private extended key must start with a zero byte")
            key = key[1:]
        return key, chain, depth, parent_fingerprint, child_index, is_private, network

    def __repr__(self):
        return "<HDKey(public_hex=%s, wif_public=%s, network=%s)>" % \
               (self.public_hex, self.wif_public(), self.network.name)

    def __eq__(self, other):
        if not isinstance(other, HDKey):
            return False
        return self.public_byte == other.public_byte and self.chain == other.chain and \
            self.private_byte == other.private_byte

    def __hash__(self):
        return hash(self.public_byte + self.chain)

    def _key_derivation(self, data):
        """
        Derive child key and chain part from parent chain code and data

        :param data: Parent public or private key with child index
        :type data: bytes

        :return tuple: key and chain bytes
        """
        i = hmac.new(self.chain, data, hashlib.sha512).digest()
        key = i[:32]
        chain = i[32:]
        key_int = int.from_bytes(key, 'big')
        if key_int >= secp256k1_n:
            raise BKeyError("Key cannot be greater than secp256k1_n. Try another index number.")
        return key, chain

    @property
    def fingerprint(self):
        """
        Get key fingerprint: the first four bytes of the hash160 of this key.

        :return bytes:
        """
        return self.hash160[:4]

    def wif(self, is_private=None, multisig=False):
        """
        Get Extended WIF of current key

        >>> k = HDKey.from_seed('000102030405060708090a0b0c0d0e0f', network='bitcoin')
        >>> k.wif()
        'xprv9s21ZrQH143K3QTDL4LXw2F7HEK3wJUD2nW2nRk4stbPy6cq3jPPqjiChkVvvNKmPGJxWUtg6LnF5kejMRNNU3TGtRBeJgk33yuGBxrMPHi'

        :param is_private: Return public or private key. Default is private for private keys
        :type is_private: bool
        :param multisig: Use the SLIP-0132 multisig P2WSH version prefix (Zpub, Zprv, Vpub, Vprv)
        :type multisig: bool

        :return str: Base58 encoded extended key
        """
        if is_private is None:
            is_private = self.is_private
        if is_private and not self.is_private:
            raise BKeyError("Cannot create private extended key from public key")
        raw = self.network.wif_prefix(is_private=is_private, multisig=multisig) + bytes([self.depth]) + \
            self.parent_fingerprint + self.child_index.to_bytes(4, 'big') + self.chain
        raw += b'\0' + self.private_byte if is_private else self.public_byte
        return base58check_encode(raw)

    def wif_public(self, multisig=False):
        """
        Get Extended WIF public key. Wrapper for the :func:`wif` method

        :return str:
        """
        return self.wif(is_private=False, multisig=multisig)

    def wif_private(self, multisig=False):
        """
        Get Extended WIF private key. Wrapper for the :func:`wif` method

        :return str:
        """
        return self.wif(is_private=True, multisig=multisig)

    def subkey_for_path(self, path):
        """
        Determine subkey for HD Key for given path.
        Path format: m / purpose' / coin_type' / account' / script_type' / address_index

        See BIP0048 for the multisig key structure.

        >>> xprv = 'xprv9s21ZrQH143K3QTDL4LXw2F7HEK3wJUD2nW2nRk4stbPy6cq3jPPqjiChkVvvNKmPGJxWUtg6LnF5kejMRNNU3TGtRBeJgk33yuGBxrMPHi'
        >>> HDKey(xprv).subkey_for_path("m/0H/1").wif_public()
        'xpub6ASuArnXKPbfEwhqN6e3mwBcDTgzisQN1wXN9BJcM47sSikHjJf3UFHKkNAWbWMiGj7Wf5uMash7SyYq527Hqck2AxYysAA7xmALppuCkwQ'

        :param path: BIP0032 key path
        :type path: str, list

        :return HDKey: HD Key class object of subkey
        """
        try:
            indices = parse_path(path)
        except ConfigError as e:
            raise InvalidDerivationIndex(str(e))
        key = self
        for index in indices:
            if key.is_private:
                key = key.child_private(index)
            else:
                key = key.child_public(index)
        return key

    def child_private(self, index=0, hardened=False):
        """
        Use Child Key Derivation (CDK) to derive child private key of current HD Key object.

        >>> xprv = 'xprv9s21ZrQH143K3QTDL4LXw2F7HEK3wJUD2nW2nRk4stbPy6cq3jPPqjiChkVvvNKmPGJxWUtg6LnF5kejMRNNU3TGtRBeJgk33yuGBxrMPHi'
        >>> ck = HDKey(xprv).child_private(0, hardened=True)
        >>> ck.depth, ck.child_index
        (1, 2147483648)

        :param index: Key index number
        :type index: int
        :param hardened: Specify if key must be hardened (True) or normal (False)
        :type hardened: bool

        :return HDKey: HD Key class object
        """
        if not self.is_private:
            raise BKeyError("Need a private key to create child private key")
        if not 0 <= index <= 0xffffffff or (hardened and index >= HARDENED):
            raise InvalidDerivationIndex("Child index %d out of range" % index)
        if hardened:
            index |= HARDENED
        if index & HARDENED:
            data = b'\0' + self.private_byte + index.to_bytes(4, 'big')
        else:
            data = self.public_byte + index.to_bytes(4, 'big')
        key, chain = self._key_derivation(data)

        newkey = (int.from_bytes(key, 'big') + self.secret) % secp256k1_n
        if newkey == 0:
            raise BKeyError("Key cannot be zero. Try another index number.")
        newkey = int.to_bytes(newkey, 32, 'big')

        return HDKey(key=newkey, chain=chain, depth=self.depth + 1, parent_fingerprint=self.fingerprint,
                     child_index=index, network=self.network)

    def child_public(self, index=0):
        """
        Use Child Key Derivation to derive child public key of current HD Key object.

        Only non-hardened keys can be derived from a public key.

        :param index: Key index number
        :type index: int

        :return HDKey: HD Key class object
        """
        if not 0 <= index < HARDENED:
            raise InvalidDerivationIndex("Cannot derive hardened or out of range index %d from a public key. "
                                         "Index must be less than 0x80000000" % index)
        data = self.public_byte + index.to_bytes(4, 'big')
        key, chain = self._key_derivation(data)
        key = int.from_bytes(key, 'big')

        x, y = self.public_point()
        if USE_FASTECDSA:
            ki = ec_point(key) + fastecdsa_point.Point(x, y, fastecdsa_secp256k1)
            ki_x = ki.x
            ki_y = ki.y
        else:
            ki = ec_point(key) + ecdsa.ellipticcurve.Point(secp256k1_curve, x, y, secp256k1_n)
            ki_x = ki.x()
            ki_y = ki.y()

        public_byte = (b'\3' if ki_y % 2 else b'\2') + ki_x.to_bytes(32, 'big')
        return HDKey(key=public_byte, chain=chain, depth=self.depth + 1, parent_fingerprint=self.fingerprint,
                     child_index=index, is_private=False, network=self.network)

    def public(self):
        """
        Public version of current private key. Returns a new HDKey object without private information

        :return HDKey:
        """
        return HDKey(key=self.public_byte, chain=self.chain, depth=self.depth,
                     parent_fingerprint=self.parent_fingerprint, child_index=self.child_index, is_private=False,
                     network=self.network)


def _sigencode_ints(r, s, order):
    return r, s


class Signature(object):
    """
    ECDSA signature with r and s value and sighash type, used to sign transaction inputs.

    Signatures are created deterministically (RFC6979) and always have a low s value.
    """

    @classmethod
    def parse(cls, signature, public_key=None):
        if isinstance(signature, bytes):
            return cls.parse_bytes(signature, public_key)
        elif isinstance(signature, str):
            return cls.parse_bytes(bytes.fromhex(signature), public_key)
        raise BKeyError("Signature must be bytes or hexadecimal string")

    @staticmethod
    def parse_bytes(signature, public_key=None):
        """
        Create a signature from a DER encoded signature with sighash type byte, or from a 64 byte string with r
        and s part.

        :param signature: Signature string
        :type signature: bytes
        :param public_key: Public key as HDKey or Key object or public key bytes
        :type public_key: HDKey, Key, bytes

        :return Signature:
        """
        hash_type = SIGHASH_ALL
        if len(signature) > 64 and signature.startswith(b'\x30'):
            hash_type = signature[-1]
            signature = convert_der_sig(signature[:-1], as_hex=False)
        if len(signature) != 64:
            raise BKeyError("Signature length must be 64 bytes or a DER encoded signature")
        r = int.from_bytes(signature[:32], 'big')
        s = int.from_bytes(signature[32:], 'big')
        return Signature(r, s, public_key=public_key, hash_type=hash_type)

    @staticmethod
    def create(digest, private, hash_type=SIGHASH_ALL):
        """
        Sign a 32 byte digest with the provided private key using a deterministic nonce as defined in RFC6979.

        :param digest: Transaction signature hash
        :type digest: bytes
        :param private: Private key as HDKey or Key object
        :type private: HDKey, Key
        :param hash_type: Sighash type appended to DER encoded signature, default is SIGHASH_ALL
        :type hash_type: int

        :return Signature:
        """
        digest = to_bytes(digest)
        if len(digest) != 32:
            raise BKeyError("Digest to sign must be 32 bytes")
        if not isinstance(private, Key) or not private.is_private:
            raise BKeyError("Private key required to create signature")

        if USE_FASTECDSA:
            r, s = fastecdsa_ecdsa.sign(digest, private.secret, curve=fastecdsa_secp256k1,
                                        hashfunc=hashlib.sha256, prehashed=True)
        else:
            sk = ecdsa.SigningKey.from_string(private.private_byte, curve=ecdsa.SECP256k1)
            r, s = sk.sign_digest_deterministic(digest, hashfunc=hashlib.sha256, sigencode=_sigencode_ints)
        if s > secp256k1_n_half:
            s = secp256k1_n - s
        return Signature(r, s, public_key=private.public(), hash_type=hash_type)

    def __init__(self, r, s, public_key=None, hash_type=SIGHASH_ALL):
        """
        Initialize Signature object with provided r and r value

        >>> r = 32979225540043540145671192266052053680452913207619328973512110841045982813493
        >>> s = 12990793585889366641563976043319195006380846016310271470330687369836458989268
        >>> sig = Signature(r, s)
        >>> sig.hex()
        '48e994862e2cdb372149bad9d9894cf3a5562b4565035943efe0acc502769d351cb88752b5fe8d70d85f3541046df617f8459e991d06a7c0db13b5d4531cd6d4'

        :param r: r value of signature
        :type r: int
        :param s: s value of signature
        :type s: int
        :param public_key: Provide public key P if known
        :type public_key: HDKey, Key, bytes
        :param hash_type: Sighash type, default is SIGHASH_ALL
        :type hash_type: int
        """
        self.r = int(r)
        self.s = int(s)
        if self.r < 1 or self.r >= secp256k1_n:
            raise BKeyError('Invalid Signature: r is not a positive integer smaller than the curve order')
        elif self.s < 1 or self.s >= secp256k1_n:
            raise BKeyError('Invalid Signature: s is not a positive integer smaller than the curve order')
        if isinstance(public_key, bytes):
            public_key = Key(public_key)
        self.public_key = public_key
        self.hash_type = hash_type

    def __repr__(self):
        return "<Signature(r=%d, s=%d, hash_type=%d)>" % (self.r, self.s, self.hash_type)

    def __str__(self):
        return self.as_der_encoded().hex()

    def __bytes__(self):
        return self.as_der_encoded()

    def __eq__(self, other):
        if not isinstance(other, Signature):
            return False
        return (self.r, self.s, self.hash_type) == (other.r, other.s, other.hash_type)

    def __hash__(self):
        return hash((self.r, self.s, self.hash_type))

    def hex(self):
        """
        Signature r and s value as single hexadecimal string

        :return hexstring:
        """
        return self.bytes().hex()

    def bytes(self):
        """
        Signature r and s value as single bytes string

        :return bytes:
        """
        return self.r.to_bytes(32, 'big') + self.s.to_bytes(32, 'big')

    @property
    def is_low_s(self):
        return self.s <= secp256k1_n_half

    def as_der_encoded(self, include_hash_type=True):
        """
        Get DER encoded signature

        :param include_hash_type: Include hash_type byte at end of signatures as used in raw scripts. Default is True
        :type include_hash_type: bool

        :return bytes:
        """
        der = der_encode_sig(self.r, self.s)
        if include_hash_type:
            der += bytes([self.hash_type])
        return der

    def verify(self, digest, public_key=None):
        """
        Verify this signature for the given 32 byte digest. Provide public_key if not already known

        :param digest: Transaction signature hash
        :type digest: bytes
        :param public_key: Public key P
        :type public_key: HDKey, Key, bytes

        :return bool:
        """
        if public_key is not None:
            self.public_key = Key(public_key) if isinstance(public_key, bytes) else public_key
        if self.public_key is None:
            raise BKeyError("Please provide public_key to verify signature")
        digest = to_bytes(digest)
        if len(digest) != 32:
            raise BKeyError("Digest to verify must be 32 bytes")

        if USE_FASTECDSA:
            x, y = self.public_key.public_point()
            return fastecdsa_ecdsa.verify((self.r, self.s), digest, fastecdsa_point.Point(x, y, fastecdsa_secp256k1),
                                          curve=fastecdsa_secp256k1, hashfunc=hashlib.sha256, prehashed=True)
        else:
            ver_key = ecdsa.VerifyingKey.from_string(self.public_key.public_uncompressed_byte[1:],
                                                     curve=ecdsa.SECP256k1)
            try:
                ver_key.verify_digest(self.bytes(), digest)
            except ecdsa.keys.BadSignatureError:
                return False
            except ecdsa.keys.BadDigestError as e:
                _logger.info("Bad Digest %s (error %s)" % (digest.hex(), e))
                return False
            return True


def sign(digest, private, hash_type=SIGHASH_ALL):
    """
    Sign transaction hash with secret private key. Creates a signature object.

    Wrapper for the :func:`Signature.create` method

    :param digest: Transaction signature hash
    :type digest: bytes
    :param private: Private key as HDKey or Key object
    :type private: HDKey, Key
    :param hash_type: Sighash type, default is SIGHASH_ALL
    :type hash_type: int

    :return Signature:
    """
    return Signature.create(digest, private, hash_type)


def verify(digest, signature, public_key=None):
    """
    Verify provided signature with digest. If provided signature is no Signature object a new object will
    be created for verification.

    :param digest: Transaction signature hash
    :type digest: bytes
    :param signature: signature as DER encoded bytes or Signature object
    :type signature: bytes, Signature
    :param public_key: Public key P. If not provided it will be derived from provided Signature object
    :type public_key: HDKey, Key, bytes

    :return bool:
    """
    if not isinstance(signature, Signature):
        if not public_key:
            raise BKeyError("No public key provided, cannot verify")
        signature = Signature.parse(signature, public_key=public_key)
    return signature.verify(digest, public_key)


def ec_point(m):
    """
    Method for elliptic curve multiplication on the secp256k1 curve. Multiply Generator point G with m

    :param m: A point on the elliptic curve
    :type m: int

    :return Point: Point multiplied by generator G
    """
    m = int(m)
    if USE_FASTECDSA:
        return fastecdsa_keys.get_public_key(m, fastecdsa_secp256k1)
    else:
        point = secp256k1_generator
        point *= m
        return point


def mod_sqrt(a):
    """
    Compute the square root of 'a' using the secp256k1 'bitcoin' curve

    Used to calculate y-coordinate if only x-coordinate from public key point is known.
    Formula: y ** 2 == x ** 3 + 7

    :param a: Number to calculate square root
    :type a: int

    :return int:
    """

    # Square root formula: k = (secp256k1_p - 3) // 4
    k = 28948022309329048855892746252171976963317496166410141009864396001977208667915
    return pow(a, k + 1, secp256k1_p)
