# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    CONFIG - Configuration settings
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

import os
import configparser
from .opcodes import *
from pathlib import Path

# General defaults
TYPE_TEXT = str
LOGLEVEL = 'WARNING'

# File locations
PSBT_CONFIG_FILE = ''
PSBT_INSTALL_DIR = Path(__file__).parents[1]
PSBT_DATA_DIR = ''
PSBT_LOG_FILE = ''

# Main
ENABLE_PSBTLIB_LOGGING = True

# Transactions
SIGHASH_ALL = 1
SIGHASH_NONE = 2
SIGHASH_SINGLE = 3
SIGHASH_ANYONECANPAY = 0x80

SEQUENCE_FINAL = 0xFFFFFFFF
SEQUENCE_REPLACE_BY_FEE = 0xFFFFFFFD

DEFAULT_TX_VERSION = 2
MAX_MONEY = 21000000 * 100000000

# Partially signed transactions (BIP174)
PSBT_MAGIC = b'psbt\xff'
PSBT_GLOBAL_UNSIGNED_TX = 0x00
PSBT_GLOBAL_XPUB = 0x01
PSBT_GLOBAL_VERSION = 0xFB
PSBT_IN_NON_WITNESS_UTXO = 0x00
PSBT_IN_WITNESS_UTXO = 0x01
PSBT_IN_PARTIAL_SIG = 0x02
PSBT_IN_SIGHASH_TYPE = 0x03
PSBT_IN_REDEEM_SCRIPT = 0x04
PSBT_IN_WITNESS_SCRIPT = 0x05
PSBT_IN_BIP32_DERIVATION = 0x06
PSBT_IN_FINAL_SCRIPTSIG = 0x07
PSBT_IN_FINAL_SCRIPTWITNESS = 0x08
PSBT_OUT_REDEEM_SCRIPT = 0x00
PSBT_OUT_WITNESS_SCRIPT = 0x01
PSBT_OUT_BIP32_DERIVATION = 0x02

# Networks
DEFAULT_NETWORK = 'regtest'

# Keys / Addresses
BECH32_CONST = 1
BECH32M_CONST = 0x2bc830a3
HARDENED = 0x80000000
BIP48_PURPOSE = 48
BIP48_SCRIPT_TYPE_P2WSH = 2
KEY_PATH_P2WSH = ["m", "purpose'", "coin_type'", "account'", "script_type'", "address_index"]

# Multisig wallets
DEFAULT_THRESHOLD = 2
DEFAULT_COSIGNERS = 3
DEFAULT_KEY_NAMES = ['key_a', 'key_b', 'key_c']
STRICT_SIGNING = True
MAX_MULTISIG_KEYS = 15


def read_config():
    config = configparser.ConfigParser()

    def config_get(section, var, fallback, is_boolean=False):
        try:
            if is_boolean:
                val = config.getboolean(section, var, fallback=fallback)
            else:
                val = config.get(section, var, fallback=fallback)
            return val
        except Exception:
            return fallback

    global PSBT_INSTALL_DIR, PSBT_DATA_DIR, PSBT_CONFIG_FILE
    global PSBT_LOG_FILE, LOGLEVEL, ENABLE_PSBTLIB_LOGGING
    global DEFAULT_NETWORK, DEFAULT_THRESHOLD, DEFAULT_COSIGNERS, STRICT_SIGNING

    # Read settings from configuration file provided in OS environment or ~/.psbtlib/ directory
    config_file_name = os.environ.get('PSBTLIB_CONFIG_FILE')
    if not config_file_name:
        PSBT_CONFIG_FILE = Path('~/.psbtlib/config.ini').expanduser()
    else:
        PSBT_CONFIG_FILE = Path(config_file_name)
        if not PSBT_CONFIG_FILE.is_absolute():
            PSBT_CONFIG_FILE = Path(Path.home(), '.psbtlib', PSBT_CONFIG_FILE)
        if not PSBT_CONFIG_FILE.exists():
            PSBT_CONFIG_FILE = Path(PSBT_INSTALL_DIR, 'data', config_file_name)
        if not PSBT_CONFIG_FILE.exists():
            raise IOError('PsbtLib configuration file not found: %s' % str(PSBT_CONFIG_FILE))
    data = config.read(str(PSBT_CONFIG_FILE))
    PSBT_DATA_DIR = Path(config_get('locations', 'data_dir', fallback='~/.psbtlib')).expanduser()

    # Log settings
    ENABLE_PSBTLIB_LOGGING = config_get("logs", "enable_psbtlib_logging", fallback=True, is_boolean=True)
    PSBT_LOG_FILE = Path(PSBT_DATA_DIR, config_get('logs', 'log_file', fallback='psbtlib.log'))
    if ENABLE_PSBTLIB_LOGGING:
        try:
            PSBT_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            ENABLE_PSBTLIB_LOGGING = False
    LOGLEVEL = config_get('logs', 'loglevel', fallback=LOGLEVEL)

    # Other settings
    DEFAULT_NETWORK = config_get('common', 'default_network', fallback=DEFAULT_NETWORK)
    DEFAULT_THRESHOLD = int(config_get('multisig', 'threshold', fallback=DEFAULT_THRESHOLD))
    DEFAULT_COSIGNERS = int(config_get('multisig', 'cosigners', fallback=DEFAULT_COSIGNERS))
    STRICT_SIGNING = config_get('multisig', 'strict_signing', fallback=STRICT_SIGNING, is_boolean=True)

    if not data:
        return False
    return True


# Initialize library
read_config()
PSBTLIB_VERSION = Path(PSBT_INSTALL_DIR, 'config/VERSION').open().read().strip()
