# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    NETWORK class reads network definitions and with helper methods
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
import math
from psbtlib.encoding import *
from psbtlib.errors import ConfigError


_logger = logging.getLogger(__name__)


class NetworkError(ConfigError):
    """
    Network Exception class
    """
    pass


def _read_network_definitions():
    """
    Returns network definitions from json file in the library data directory

    :return dict: Network definitions
    """

    fn = Path(PSBT_INSTALL_DIR, 'data', 'networks.json')
    with fn.open() as f:
        try:
            network_definitions = json.loads(f.read())
        except json.decoder.JSONDecodeError as e:
            raise NetworkError("Error reading network definitions from %s: %s" % (fn, e))
    return network_definitions


NETWORK_DEFINITIONS = _read_network_definitions()


def network_by_value(field, value):
    """
    Return all networks for field and (prefix) value, sorted by network priority.

    >>> network_by_value('prefix_bech32', 'tb')
    ['testnet', 'signet']
    >>> network_by_value('prefix_address', '6f')
    ['testnet', 'regtest', 'signet']

    :param field: Prefix name from networks definitions (networks.json)
    :type field: str
    :param value: Value of network prefix
    :type value: str

    :return list: Of network name strings
    """
    nws = [(nv, NETWORK_DEFINITIONS[nv]['priority'])
           for nv in NETWORK_DEFINITIONS if NETWORK_DEFINITIONS[nv][field] == value]
    if not nws and isinstance(value, str):
        value = value.upper()
        nws = [(nv, NETWORK_DEFINITIONS[nv]['priority'])
               for nv in NETWORK_DEFINITIONS if NETWORK_DEFINITIONS[nv][field] == value]
    return [nw[0] for nw in sorted(nws, key=lambda x: x[1], reverse=True)]


def network_defined(network):
    """
    Is network defined?

    >>> network_defined('regtest')
    True
    >>> network_defined('litecoin')
    False

    :param network: Network name
    :type network: str

    :return bool:
    """
    return network in NETWORK_DEFINITIONS


def wif_prefix_search(wif, network=None):
    """
    Extract network and public/private information from extended key or its 4 byte version prefix.

    >>> [nw['network'] for nw in wif_prefix_search('043587CF')]
    ['testnet', 'regtest', 'signet']
    >>> wif_prefix_search('0488ADE4', network='bitcoin')
    [{'prefix': '0488ADE4', 'is_private': True, 'prefix_str': 'xprv', 'network': 'bitcoin', 'multisig': None, 'script_type': None}]

    :param wif: Extended key string or prefix as hexadecimal string
    :type wif: str
    :param network: Limit search to specified network
    :type network: str

    :return list: List of dictionaries with matching prefixes
    """
    key_hex = wif
    if len(wif) > 8:
        try:
            key_hex = base58_decode(wif).hex()
        except EncodingError:
            pass
    prefix = key_hex[:8].upper()
    matches = []
    for nw in sorted(NETWORK_DEFINITIONS, key=lambda n: NETWORK_DEFINITIONS[n]['priority'], reverse=True):
        if network is not None and nw != network:
            continue
        for pf in NETWORK_DEFINITIONS[nw]['prefixes_wif']:
            if pf[0] == prefix:
                matches.append({
                    'prefix': prefix,
                    'is_private': pf[2] == 'private',
                    'prefix_str': pf[1],
                    'network': nw,
                    'multisig': pf[3],
                    'script_type': pf[4],
                })
    return matches


class Network(object):
    """
    Network class with all network definitions.

    Prefixes for WIF, P2SH and segwit addresses, HD public and private keys. A currency code, the
    denominator (such as satoshi) and a BIP0044 cointype.

    """

    def __init__(self, network_name=DEFAULT_NETWORK):
        if isinstance(network_name, Network):
            network_name = network_name.name
        if network_name not in NETWORK_DEFINITIONS:
            raise NetworkError("Network %s not found in network definitions" % network_name)
        self.name = network_name

        self.currency_name = NETWORK_DEFINITIONS[network_name]['currency_name']
        self.currency_code = NETWORK_DEFINITIONS[network_name]['currency_code']
        self.description = NETWORK_DEFINITIONS[network_name]['description']
        self.prefix_address_p2sh = bytes.fromhex(NETWORK_DEFINITIONS[network_name]['prefix_address_p2sh'])
        self.prefix_address = bytes.fromhex(NETWORK_DEFINITIONS[network_name]['prefix_address'])
        self.prefix_bech32 = NETWORK_DEFINITIONS[network_name]['prefix_bech32']
        self.prefix_wif = bytes.fromhex(NETWORK_DEFINITIONS[network_name]['prefix_wif'])
        self.denominator = NETWORK_DEFINITIONS[network_name]['denominator']
        self.bip44_cointype = NETWORK_DEFINITIONS[network_name]['bip44_cointype']
        self.dust_amount = NETWORK_DEFINITIONS[network_name]['dust_amount']  # Dust amount in satoshi
        self.priority = NETWORK_DEFINITIONS[network_name]['priority']
        self.prefixes_wif = NETWORK_DEFINITIONS[network_name]['prefixes_wif']

    def __repr__(self):
        return "<Network: %s>" % self.name

    def __eq__(self, other):
        if isinstance(other, str):
            return self.name == other
        if not isinstance(other, Network):
            return False
        return self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def print_value(self, value):
        """
        Return the value in satoshi as string with currency code

        >>> Network('bitcoin').print_value(100000)
        '0.00100000 BTC'

        :param value: Value in smallest denominator such as Satoshi
        :type value: int

        :return str:
        """
        if value is None:
            return ""
        decimals = -round(math.log10(self.denominator))
        return "%.*f %s" % (decimals, value * self.denominator, self.currency_code)

    def wif_prefix(self, is_private=False, multisig=False):
        """
        Get extended key version prefix for this network

        >>> Network('bitcoin').wif_prefix()  # xpub
        b'\\x04\\x88\\xb2\\x1e'
        >>> Network('testnet').wif_prefix(is_private=True)  # tprv
        b'\\x045\\x83\\x94'

        :param is_private: Private or public key, default is False
        :type is_private: bool
        :param multisig: Use the SLIP-0132 multisig P2WSH prefix, i.e. Zpub or Vpub. Default is False and returns the BIP32 prefix
        :type multisig: bool

        :return bytes:
        """
        ip = 'private' if is_private else 'public'
        found_prefixes = [bytes.fromhex(pf[0]) for pf in self.prefixes_wif
                          if pf[2] == ip and (pf[3] is True) == multisig]
        if found_prefixes:
            return found_prefixes[0]
        raise NetworkError("Extended key prefix for %s key not found for network %s" % (ip, self.name))
