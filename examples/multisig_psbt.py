# -*- coding: utf-8 -*-
#
#    PsbtLib - Python Multisig PSBT Coordination Library
#
#    EXAMPLES - Create, sign, combine and finalize a 2-of-3 multisig transaction
#
#    © 2024 October - 1200 Web Development <http://1200wd.com/>
#

from pprint import pprint
from psbtlib.wallets import *
from psbtlib.psbt import combine_psbts, finalize_psbt

#
# Create keys for 3 cosigners. Each cosigner only shares the xpub, fingerprint and path
#
NETWORK = 'regtest'
records = [KeyRecord.generate(name, NETWORK) for name in ['key_a', 'key_b', 'key_c']]
for kr in records:
    print("%s: [%s/%s] %s" % (kr.name, kr.fingerprint.hex(), kr.derivation_path[2:], kr.xpub))

origins = [kr.key_origin() for kr in records]
wallet = MultisigWallet(origins, threshold=2, network=NETWORK)
print("\nDescriptor: %s" % wallet.descriptor())
derived = wallet.derive_at(0)
print("Address at index 0: %s" % derived.address)
print("Witness script: %s" % derived.witness_script.hex())

#
# Spend a (dummy) UTXO of 1 BTC on the address at index 0, change goes to index 1
#
utxo = Utxo('00' * 31 + '01', 0, 100000000, script=derived.script_pubkey)
destination = script_to_address(bytes.fromhex('0014751e76e8199196d454941c45d1b3a323f1433bd6'), NETWORK)
unsigned = wallet.create_spend(utxo, destination, 50000000, 1000)
unsigned_b64 = unsigned.to_base64()
print("\nUnsigned PSBT: %s" % unsigned_b64)

#
# Cosigners A and B sign their own copy of the PSBT
#
psbt_a = PSBT.from_base64(unsigned_b64)
print("Key A signed %d input(s)" % records[0].sign(psbt_a))
psbt_b = PSBT.from_base64(unsigned_b64)
print("Key B signed %d input(s)" % records[1].sign(psbt_b))

#
# Combine the signatures and create the final transaction
#
combined = combine_psbts([psbt_a, psbt_b])
combined.info()
t = finalize_psbt(combined, threshold=2)
print("\nFinal transaction %s" % t.txid)
print("Raw: %s" % t.raw_hex())
pprint(t.as_dict(NETWORK))
