# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#    ERRORS - Exception classes used throughout the library
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

import logging

_logger = logging.getLogger(__name__)


class PsbtlibError(Exception):
    """
    Base class for all PsbtLib exceptions. Logs and raises errors
    """

    def __init__(self, msg=''):
        self.msg = msg
        _logger.error(msg)

    def __str__(self):
        return self.msg


class ConfigError(PsbtlibError):
    """
    Wrong number of key sources, invalid threshold, malformed path or fingerprint
    """
    pass


class FormatError(PsbtlibError):
    """
    Corrupt PSBT, base64, transaction, script or key record encoding
    """
    pass


class InvalidDerivationIndex(PsbtlibError):
    """
    Hardened or out of range index where a non-hardened child index is required
    """
    pass


class MissingInputMetadata(PsbtlibError):
    """
    Input of a partially signed transaction misses its witness script or witness UTXO
    """

    def __init__(self, msg='', input_index=None):
        self.input_index = input_index
        super(MissingInputMetadata, self).__init__(msg)


class KeyMismatch(PsbtlibError):
    """
    Derived public key disagrees with the key in the transaction metadata
    """
    pass


class InsufficientSignatures(PsbtlibError):
    """
    Not enough partial signatures to finalize an input
    """

    def __init__(self, input_index, have, need):
        self.input_index = input_index
        self.have = have
        self.need = need
        super(InsufficientSignatures, self).__init__(
            "Input %d has %d valid signature(s), %d required" % (input_index, have, need))


class NetworkMismatch(PsbtlibError):
    """
    Address, key or transaction belongs to another network
    """
    pass
