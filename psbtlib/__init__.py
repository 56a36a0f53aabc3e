# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
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

import psbtlib.encoding
import psbtlib.keys
import psbtlib.scripts
import psbtlib.transactions
import psbtlib.psbt
import psbtlib.wallets
import psbtlib.tools

__all__ = ["encoding", "keys", "scripts", "transactions", "psbt", "wallets", "tools"]
