"""
OP_PUSH_TX: the unlocking script pushes the signature preimage of the spending transaction,
the locking script reads its fields and proves it's genuine by building a signature of it
(private key 1, fixed nonce) and checking it with OP_CHECKSIG against the known public key.

Preimage layout:

    version(4) | hash_prevouts(32) | hash_sequence(32) | outpoint(36) | script(varint + n) |
    satoshis(8) | sequence(4) | hash_outputs(32) | locktime(4) | sighash(4)

The getters expect the preimage on top of the stack and put the field above it.
"""
from typing import TYPE_CHECKING

from bsvlib import sighash
from bsvlib.script import Script, opcode
from bsvlib.contract.helpers import op_if, reverse, slice, trim, decode_uint
from bsvlib.contract.varint import trim_varint
from bsvlib.const import PREIMAGE_PLACEHOLDER_LENGTH, SHA256_LENGTH

if TYPE_CHECKING:
    from bsvlib.contract.base import BaseContract


SIGHASH_FLAG = 0x41
# secp256k1 order without the trailing bytes rebuilt in script
ORDER_PREFIX = bytes.fromhex('414136d08c5ed2bf3ba048afe6dcaebafe')
PUBKEY_A = bytes.fromhex('023635954789a02e39fb7e54440b6f528d53efd65635ddad7f3c4085f97fdbdc48')
PUBKEY_B = bytes.fromhex('038ff83d8cf12121491609c4939dc11c4aa35503508fe432dc5a5c1905608b9218')
PUBKEY_OPT = bytes.fromhex('02b405d7f0322a89d0f9f3a98e6f938fdc1c969a8d1382a2bf66a71ae74a1e83b0')
# DER header and r (x of the generator point, k = 1)
SIG_PREFIX = bytes.fromhex('3044022079be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f817980220')


def push_tx(script: Script, contract: 'BaseContract') -> Script:
    """Push the preimage of the contract input, zero bytes placeholder without context or when locking"""
    if contract.ctx is None or contract.locking:
        return script.push(bytes(PREIMAGE_PLACEHOLDER_LENGTH))

    tx, vin = contract.ctx
    return script.push(sighash.get_preimage(tx, vin, contract.utxo.txout, SIGHASH_FLAG))


def get_version(script: Script) -> Script:
    return decode_uint(slice(script.push(opcode.OP_DUP), 0, 4))


def get_prevouts_hash(script: Script) -> Script:
    return slice(script.push(opcode.OP_DUP), 4, SHA256_LENGTH)


def get_sequence_hash(script: Script) -> Script:
    return slice(script.push(opcode.OP_DUP), 36, SHA256_LENGTH)


def get_outpoint(script: Script) -> Script:
    return slice(script.push(opcode.OP_DUP), 68, 36)


def get_script(script: Script) -> Script:
    """Locking script of the spent output, the place to keep the contract state"""
    script.push(opcode.OP_DUP)
    trim(script, 104)
    trim(script, -52)
    return trim_varint(script)


def get_satoshis(script: Script) -> Script:
    return decode_uint(slice(script.push(opcode.OP_DUP), -52, 8))


def get_sequence(script: Script) -> Script:
    return decode_uint(slice(script.push(opcode.OP_DUP), -44, 4))


def get_outputs_hash(script: Script) -> Script:
    return slice(script.push(opcode.OP_DUP), -40, SHA256_LENGTH)


def get_lock_time(script: Script) -> Script:
    return decode_uint(slice(script.push(opcode.OP_DUP), -8, 4))


def get_sighash_type(script: Script) -> Script:
    return decode_uint(slice(script.push(opcode.OP_DUP), -4, 4))


def check_tx(script: Script) -> Script:
    """
    Replace the preimage on top of the stack with the OP_CHECKSIG result of
    the signature built from it. The s value is normalized in script, so any preimage works.
    """
    script.push(opcode.OP_HASH256)
    _prepare_sighash(script)
    _push_order(script)
    # order / 2
    script.push(opcode.OP_DUP).push(opcode.OP_2).push(opcode.OP_DIV)
    _sighash_msb_is_0_or_255(script)
    op_if(script,
          lambda s: s.push(opcode.OP_2).push(opcode.OP_PICK).push(opcode.OP_ADD),
          lambda s: s.push(opcode.OP_1ADD))
    _sighash_mod_gt_order(script)
    op_if(script, lambda s: s.push(opcode.OP_SUB), lambda s: s.push(opcode.OP_NIP))
    _push_sig(script)
    script.push(opcode.OP_SWAP)
    op_if(script, lambda s: s.push(PUBKEY_A), lambda s: s.push(PUBKEY_B))
    return script.push(opcode.OP_CHECKSIG)


def check_tx_verify(script: Script) -> Script:
    """check_tx with OP_CHECKSIGVERIFY"""
    check_tx(script)
    script[-1] = opcode.OP_CHECKSIGVERIFY
    return script


def _prepare_sighash(script: Script) -> None:
    # hash as little endian number and its most significant byte
    reverse(script, SHA256_LENGTH)
    script.push(b'\x1f').push(opcode.OP_SPLIT).push(opcode.OP_TUCK).push(opcode.OP_CAT)
    decode_uint(script)


def _push_order(script: Script) -> None:
    script.push(ORDER_PREFIX).push(b'\x00').push(opcode.OP_15).push(opcode.OP_NUM2BIN).push(opcode.OP_INVERT)
    script.push(opcode.OP_CAT).push(b'\x00').push(opcode.OP_CAT)


def _sighash_msb_is_0_or_255(script: Script) -> None:
    script.push(opcode.OP_ROT).push(opcode.OP_3).push(opcode.OP_ROLL)
    script.push(opcode.OP_DUP).push(b'\xff').push(opcode.OP_EQUAL)
    script.push(opcode.OP_SWAP).push(b'\x00').push(opcode.OP_EQUAL)
    script.push(opcode.OP_BOOLOR).push(opcode.OP_TUCK)


def _sighash_mod_gt_order(script: Script) -> None:
    script.push(opcode.OP_3).push(opcode.OP_ROLL).push(opcode.OP_TUCK).push(opcode.OP_MOD)
    script.push(opcode.OP_DUP).push(opcode.OP_4).push(opcode.OP_ROLL).push(opcode.OP_GREATERTHAN)


def _push_sig(script: Script) -> None:
    script.push(SIG_PREFIX).push(opcode.OP_SWAP)
    reverse(script, SHA256_LENGTH)
    script.push(opcode.OP_CAT).push(SIGHASH_FLAG).push(opcode.OP_CAT)


def check_tx_opt(script: Script) -> Script:
    """
    Short (87 bytes) check_tx. s is the hash + 1 without normalization, so the signature
    is valid (low-S) only when the most significant byte of the hash is below 0x7f,
    about half of the transactions. The spending transaction has to be changed until
    it passes.
    """
    script.push(opcode.OP_HASH256)
    # add 1 to the hash
    script.push(opcode.OP_1).push(opcode.OP_SPLIT).push(opcode.OP_SWAP).push(opcode.OP_BIN2NUM)
    script.push(opcode.OP_1ADD).push(opcode.OP_SWAP).push(opcode.OP_CAT)

    script.push(SIG_PREFIX).push(opcode.OP_SWAP).push(opcode.OP_CAT).push(SIGHASH_FLAG).push(opcode.OP_CAT)
    return script.push(PUBKEY_OPT).push(opcode.OP_CHECKSIG)


def check_tx_opt_verify(script: Script) -> Script:
    """check_tx_opt with OP_CHECKSIGVERIFY"""
    check_tx_opt(script)
    script[-1] = opcode.OP_CHECKSIGVERIFY
    return script
