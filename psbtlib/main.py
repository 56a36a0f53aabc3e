# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    MAIN - Load configs and initialize logging
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

# Do not remove any of the imports below, used by other files
import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from psbtlib.config.config import *


# Initialize logging
logger = logging.getLogger('psbtlib')
logger.setLevel(LOGLEVEL)

if ENABLE_PSBTLIB_LOGGING:
    handler = RotatingFileHandler(str(PSBT_LOG_FILE), maxBytes=100 * 1024 * 1024, backupCount=2)
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(funcName)s(%(lineno)d) %(message)s',
                                  datefmt='%Y/%m/%d %H:%M:%S')
    handler.setFormatter(formatter)
    handler.setLevel(LOGLEVEL)
    logger.addHandler(handler)

    _logger = logging.getLogger(__name__)
    logger.info('WELCOME TO PSBTLIB - MULTISIG PSBT COORDINATION LIBRARY')
    logger.info('Version: %s' % PSBTLIB_VERSION)
    logger.info('Read config from: %s' % PSBT_CONFIG_FILE)
    logger.info('Default network: %s' % DEFAULT_NETWORK)
    logger.info('Multisig policy: %d-of-%d' % (DEFAULT_THRESHOLD, DEFAULT_COSIGNERS))
    logger.info('Logging to: %s' % PSBT_LOG_FILE)


def bip48_key_path(network=None, account=0, address_index=None):
    """
    BIP48 key path for native segwit multisig (P2WSH) keys.

    >>> bip48_key_path('bitcoin')
    "m/48'/0'/0'/2'"
    >>> bip48_key_path('regtest', address_index=5)
    "m/48'/1'/0'/2'/5"

    :param network: Network name, mainnet uses coin type 0 and all test networks coin type 1
    :type network: str
    :param account: Account ID, default is 0
    :type account: int
    :param address_index: Add non-hardened address index level to path. Default is None: return the account base path
    :type address_index: int

    :return str:
    """
    if network is None:
        network = DEFAULT_NETWORK
    values = {
        'purpose': BIP48_PURPOSE,
        'coin_type': 0 if network == 'bitcoin' else 1,
        'account': account,
        'script_type': BIP48_SCRIPT_TYPE_P2WSH,
        'address_index': address_index,
    }
    path = []
    for level in KEY_PATH_P2WSH:
        if level == 'm':
            path.append(level)
            continue
        name = level.rstrip("'")
        if values[name] is None:
            continue
        path.append('%d%s' % (values[name], "'" if level.endswith("'") else ''))
    return '/'.join(path)
