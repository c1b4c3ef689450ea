from dataclasses import dataclass
from typing import Optional, Self

from bsvlib import exceptions
from bsvlib.script import Script, opcode
from bsvlib.address import PrivateKey, PublicKey
from bsvlib.transaction import Tx, TxOut, OutPoint, EmptyOutput
from bsvlib.utils import d_sha256, sint32, sint64, uint32, varbin, take, ensure_bytes
from bsvlib.const import SIGHASHES, DEFAULT_SIGHASH, EMPTY_SEQUENCE, NULL_HASH, SHA256_LENGTH


def is_forkid(sighash: int) -> bool:
    return bool(sighash & SIGHASHES['forkid'])


def is_anyonecanpay(sighash: int) -> bool:
    return bool(sighash & SIGHASHES['anyonecanpay'])


def base_type(sighash: int) -> int:
    return sighash & 0x1f


def hash_prevouts(tx: Tx, sighash: int = DEFAULT_SIGHASH) -> bytes:
    if is_anyonecanpay(sighash):
        return NULL_HASH
    return d_sha256(b''.join(inp.outpoint.serialize() for inp in tx.inputs))


def hash_sequence(tx: Tx, sighash: int = DEFAULT_SIGHASH) -> bytes:
    if is_anyonecanpay(sighash) or base_type(sighash) in (SIGHASHES['single'], SIGHASHES['none']):
        return NULL_HASH
    return d_sha256(b''.join(inp.sequence.pack() for inp in tx.inputs))


def hash_outputs(tx: Tx, vin: int, sighash: int = DEFAULT_SIGHASH) -> bytes:
    match base_type(sighash):
        case t if t == SIGHASHES['none']:
            return NULL_HASH
        case t if t == SIGHASHES['single']:
            if vin >= len(tx.outputs):
                return NULL_HASH
            return d_sha256(tx.outputs[vin].serialize())
        case _:
            return d_sha256(b''.join(out.serialize() for out in tx.outputs))


def _spent_output(tx: Tx, vin: int, txout: Optional[TxOut]) -> TxOut:
    if txout is not None:
        return txout
    if (prevout := tx.inputs[vin].prevout) is None:
        raise exceptions.MissingPrevout(vin)
    return prevout


@dataclass
class Preimage:
    """
    Replay protected (FORKID) signature preimage split by fields, so each of them
    can be derived (and checked inside a script) independently.

        version | hash_prevouts | hash_sequence | outpoint | script | satoshis |
        sequence | hash_outputs | locktime | sighash
    """
    version: int
    hash_prevouts: bytes
    hash_sequence: bytes
    outpoint: OutPoint
    script: bytes
    satoshis: int
    sequence: int
    hash_outputs: bytes
    locktime: int
    sighash: int

    @classmethod
    def from_tx(cls, tx: Tx, vin: int, txout: Optional[TxOut] = None, sighash: int = DEFAULT_SIGHASH) -> Self:
        txout = _spent_output(tx, vin, txout)
        inp = tx.inputs[vin]
        return cls(
            tx.version,
            hash_prevouts(tx, sighash),
            hash_sequence(tx, sighash),
            inp.outpoint,
            txout.script.serialize(),
            txout.satoshis,
            inp.sequence,
            hash_outputs(tx, vin, sighash),
            tx.locktime,
            sighash
        )

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Self:
        data = ensure_bytes(raw)
        version, data = sint32.pop(data)
        prevouts, data = take(data, SHA256_LENGTH)
        sequences, data = take(data, SHA256_LENGTH)
        outpoint, data = OutPoint.unpack(data)
        script, data = varbin.unpack(data)
        satoshis, data = sint64.pop(data)
        sequence, data = uint32.pop(data)
        outputs, data = take(data, SHA256_LENGTH)
        locktime, data = uint32.pop(data)
        sighash, data = uint32.pop(data)
        if data:
            raise exceptions.TrailingData(len(data), cls.__name__)
        return cls(version, prevouts, sequences, outpoint, bytes(script), satoshis,
                   sequence, outputs, locktime, sighash)

    def serialize(self) -> bytes:
        return b''.join([
            sint32(self.version).pack(),
            self.hash_prevouts,
            self.hash_sequence,
            self.outpoint.serialize(),
            varbin(self.script).pack(),
            sint64(self.satoshis).pack(),
            uint32(self.sequence).pack(),
            self.hash_outputs,
            uint32(self.locktime).pack(),
            uint32(self.sighash).pack()
        ])


def get_legacy_preimage(tx: Tx, vin: int, script: Script, sighash: int) -> bytes:
    """Legacy (pre-FORKID) algorithm: serialized modified transaction copy + sighash"""
    tx = tx.copy()
    base = base_type(sighash)

    for inp in tx.inputs:
        inp.script = Script()
    tx.inputs[vin].script = Script(*(c for c in script if c is not opcode.OP_CODESEPARATOR), validation=False)

    if base == SIGHASHES['none']:
        tx.outputs.clear()

        for n, inp in enumerate(tx.inputs):
            if n != vin:
                inp.sequence = EMPTY_SEQUENCE

    elif base == SIGHASHES['single']:
        try:
            out = tx.outputs[vin]
        except IndexError:
            raise exceptions.SighashSingleRequiresInputAndOutputWithSameIndexes(vin) from None

        tx.outputs = [EmptyOutput() for _ in range(vin)] + [out]

        for n, inp in enumerate(tx.inputs):
            if n != vin:
                inp.sequence = EMPTY_SEQUENCE

    if is_anyonecanpay(sighash):
        tx.inputs = [tx.inputs[vin]]

    return tx.serialize() + uint32(sighash).pack()


def get_preimage(tx: Tx, vin: int, txout: Optional[TxOut] = None, sighash: int = DEFAULT_SIGHASH) -> bytes:
    """
    :param tx: Spending transaction.
    :param vin: Index of the signed input.
    :param txout: Output spent by the input, by default TxIn.prevout.
    :param sighash: Signature Hash flags.
    """
    if is_forkid(sighash):
        return Preimage.from_tx(tx, vin, txout, sighash).serialize()
    return get_legacy_preimage(tx, vin, _spent_output(tx, vin, txout).script, sighash)


def get_hash4sign(tx: Tx, vin: int, txout: Optional[TxOut] = None, sighash: int = DEFAULT_SIGHASH) -> bytes:
    return d_sha256(get_preimage(tx, vin, txout, sighash))


def sign(tx: Tx, vin: int, private: PrivateKey, txout: Optional[TxOut] = None,
         sighash: int = DEFAULT_SIGHASH, *, k: Optional[int] = None) -> bytes:
    """Script signature (DER + sighash byte) of the input"""
    return private.sign_tx(get_hash4sign(tx, vin, txout, sighash), sighash, k=k)


def verify(signature: bytes, tx: Tx, vin: int, public: PublicKey | bytes, txout: Optional[TxOut] = None) -> bool:
    """
    Check script signature (DER + sighash byte) of the input, malformed
    signatures and public keys give False
    """
    if not signature:
        return False

    if not isinstance(public, PublicKey):
        try:
            public = PublicKey.from_bytes(public)
        except exceptions.InvalidPublicKey:
            return False

    der, sighash = signature[:-1], signature[-1]
    return public.verify(der, get_hash4sign(tx, vin, txout, sighash))
