from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Self, TypedDict

from bsvlib import exceptions
from bsvlib.script import Script
from bsvlib.utils import SupportsCopy, SupportsDump, SupportsSerialize, TypeConverter, \
                         d_sha256, sint32, sint64, uint32, varint, varbin, take, ensure_bytes, pprint_class
from bsvlib.const import DEFAULT_SEQUENCE, DEFAULT_VERSION, DEFAULT_LOCKTIME, NEGATIVE_SATOSHI, \
                         NULL_HASH, NULL_INDEX, SHA256_LENGTH


class OutPointDict(TypedDict):
    txid: str
    vout: int


class InputDict(TypedDict):
    txid: str
    vout: int
    script: str
    sequence: int


class OutputDict(TypedDict):
    satoshis: int
    script: str


class TransactionDict(TypedDict):
    txid: str
    version: int
    inputs: list[InputDict]
    outputs: list[OutputDict]
    locktime: int


class OutPoint(SupportsCopy, SupportsDump, SupportsSerialize):
    """Reference to a previous transaction output, hash is in internal (reversed to txid) byte order"""

    index: TypeConverter[int, uint32] = TypeConverter(uint32)

    def __init__(self, hash: bytes, index: int) -> None:
        assert len(hash) == SHA256_LENGTH, f'outpoint hash must be {SHA256_LENGTH} bytes, {len(hash)} received'
        self.hash = hash
        self.index = index

    @classmethod
    def from_txid(cls, txid: str, index: int) -> Self:
        return cls(bytes.fromhex(txid)[::-1], index)

    @classmethod
    def null(cls) -> Self:
        return cls(NULL_HASH, NULL_INDEX)

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        hash, raw = take(raw, SHA256_LENGTH)
        index, raw = uint32.pop(raw)
        return cls(hash, index), raw

    @property
    def txid(self) -> str:
        return self.hash[::-1].hex()

    def is_null(self) -> bool:
        return self.hash == NULL_HASH and self.index == NULL_INDEX

    def copy(self) -> Self:
        return type(self)(self.hash, self.index)

    def serialize(self) -> bytes:
        return self.hash + self.index.pack()

    def as_dict(self) -> OutPointDict:
        return {'txid': self.txid, 'vout': self.index}

    def as_json(self, *, indent: Optional[int] = None) -> str:
        return super().as_json(self.as_dict(), indent=indent)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutPoint):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __hash__(self) -> int:
        return hash(self.serialize())

    def __repr__(self) -> str:
        return f'{self.txid}:{self.index}'


class TxOut(SupportsCopy, SupportsDump, SupportsSerialize):
    satoshis: TypeConverter[int, sint64] = TypeConverter(sint64)
    script: TypeConverter[bytes | str, Script] = TypeConverter(Script, Script.deserialize)

    def __init__(self, satoshis: int, script: Script | bytes | str) -> None:
        self.satoshis = satoshis
        self.script = script

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        satoshis, raw = sint64.pop(raw)
        script, raw = varbin.unpack(raw)
        return cls(satoshis, Script.deserialize(script)), raw

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Self:
        out, rest = cls.unpack(ensure_bytes(raw))
        if rest:
            raise exceptions.TrailingData(len(rest), cls.__name__)
        return out

    @property
    def size(self) -> int:
        return len(self.serialize())

    def copy(self) -> Self:
        return type(self)(self.satoshis, self.script.copy())

    def serialize(self) -> bytes:
        return self.satoshis.pack() + varbin(self.script.serialize()).pack()

    def as_dict(self) -> OutputDict:
        return {
            'satoshis': self.satoshis,
            'script': self.script.serialize().hex()
        }

    def as_json(self, *, indent: Optional[int] = None) -> str:
        return super().as_json(self.as_dict(), indent=indent)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TxOut):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __repr__(self) -> str:
        return pprint_class(self, kwargs={
            'satoshis': self.satoshis,
            'script': self.script
        })


class EmptyOutput(TxOut):
    """Placeholder for outputs before the signed one in legacy SIGHASH_SINGLE"""

    def __init__(self) -> None:
        super().__init__(NEGATIVE_SATOSHI, Script())


class TxIn(SupportsCopy, SupportsDump, SupportsSerialize):
    sequence: TypeConverter[int, uint32] = TypeConverter(uint32)

    def __init__(self, outpoint: OutPoint, script: Optional[Script] = None,
                 sequence: int = DEFAULT_SEQUENCE, prevout: Optional[TxOut] = None) -> None:
        """
        :param outpoint: Spent output reference.
        :param script: Unlocking script.
        :param sequence: Sequence (more in Bitcoin docs).
        :param prevout: The spent output, isn't serialized but used for the signature hash.
        """
        self.outpoint = outpoint
        self.script = script if script is not None else Script()
        self.sequence = sequence
        self.prevout = prevout

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        outpoint, raw = OutPoint.unpack(raw)
        script_b, raw = varbin.unpack(raw)
        sequence, raw = uint32.pop(raw)

        # coinbase script can be arbitrary, keep it raw
        script = Script(frozen=bytes(script_b)) if outpoint.is_null() else Script.deserialize(script_b)
        return cls(outpoint, script, sequence), raw

    @property
    def size(self) -> int:
        return len(self.serialize())

    def is_coinbase(self) -> bool:
        return self.outpoint.is_null()

    def copy(self) -> Self:
        return type(self)(self.outpoint.copy(), self.script.copy(), self.sequence, self.prevout)

    def serialize(self) -> bytes:
        return b''.join([
            self.outpoint.serialize(),
            varbin(self.script.serialize()).pack(),
            self.sequence.pack()
        ])

    def as_dict(self) -> InputDict:
        return {
            'txid': self.outpoint.txid,
            'vout': self.outpoint.index,
            'script': self.script.serialize().hex(),
            'sequence': self.sequence
        }

    def as_json(self, *, indent: Optional[int] = None) -> str:
        return super().as_json(self.as_dict(), indent=indent)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TxIn):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __repr__(self) -> str:
        return pprint_class(self, kwargs=self.as_dict())


@dataclass
class UTXO:
    """Unspent output: where it is (outpoint) and what it is (txout)"""
    outpoint: OutPoint
    txout: TxOut

    @classmethod
    def from_tx(cls, tx: 'Tx', vout: int) -> Self:
        return cls(OutPoint(tx.hash, vout), tx.outputs[vout])

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Self:
        """
        Build from a mapping like {"txid": ..., "vout": 0, "satoshis": 1000, "script": "76a9..."},
        "outputIndex" and "amount" are accepted as aliases
        """
        index = params['vout'] if 'vout' in params else params['outputIndex']
        satoshis = params['satoshis'] if 'satoshis' in params else params['amount']
        return cls(OutPoint.from_txid(params['txid'], index), TxOut(satoshis, params['script']))

    @property
    def satoshis(self) -> int:
        return self.txout.satoshis

    def to_txin(self, script: Optional[Script] = None, sequence: int = DEFAULT_SEQUENCE) -> TxIn:
        return TxIn(self.outpoint, script, sequence, self.txout)


class Tx(SupportsCopy, SupportsDump, SupportsSerialize):
    version: TypeConverter[int, sint32] = TypeConverter(sint32)
    locktime: TypeConverter[int, uint32] = TypeConverter(uint32)

    def __init__(self, inputs: Iterable[TxIn] = (), outputs: Iterable[TxOut] = (),
                 version: int = DEFAULT_VERSION, locktime: int = DEFAULT_LOCKTIME) -> None:
        self.inputs = list(inputs)
        self.outputs = list(outputs)
        self.version = version
        self.locktime = locktime

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        version, raw = sint32.pop(raw)

        inputs = []
        count, raw = varint.unpack(raw)
        for _ in range(count):
            inp, raw = TxIn.unpack(raw)
            inputs.append(inp)

        outputs = []
        count, raw = varint.unpack(raw)
        for _ in range(count):
            out, raw = TxOut.unpack(raw)
            outputs.append(out)

        locktime, raw = uint32.pop(raw)
        return cls(inputs, outputs, version, locktime), raw

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Self:
        tx, rest = cls.unpack(ensure_bytes(raw))
        if rest:
            raise exceptions.TrailingData(len(rest), cls.__name__)
        return tx

    @property
    def hash(self) -> bytes:
        return d_sha256(self.serialize())

    @property
    def txid(self) -> str:
        return self.hash[::-1].hex()

    @property
    def size(self) -> int:
        return len(self.serialize())

    def is_coinbase(self) -> bool:
        return len(self.inputs) == 1 and self.inputs[0].is_coinbase()

    def sort(self) -> Self:
        """BIP-69 ordering, returns a new transaction"""
        tx = self.copy()
        tx.inputs.sort(key=lambda i: (i.outpoint.hash[::-1], i.outpoint.index))
        tx.outputs.sort(key=lambda o: (o.satoshis, o.script.serialize()))
        return tx

    def copy(self) -> Self:
        return type(self)(
            [inp.copy() for inp in self.inputs],
            [out.copy() for out in self.outputs],
            self.version,
            self.locktime
        )

    def serialize(self) -> bytes:
        return b''.join([
            self.version.pack(),
            varint(len(self.inputs)).pack(),
            b''.join(inp.serialize() for inp in self.inputs),
            varint(len(self.outputs)).pack(),
            b''.join(out.serialize() for out in self.outputs),
            self.locktime.pack()
        ])

    def as_dict(self) -> TransactionDict:
        return {
            'txid': self.txid,
            'version': self.version,
            'inputs': [inp.as_dict() for inp in self.inputs],
            'outputs': [out.as_dict() for out in self.outputs],
            'locktime': self.locktime
        }

    def as_json(self, *, indent: Optional[int] = None) -> str:
        return super().as_json(self.as_dict(), indent=indent)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tx):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __repr__(self):
        return str(self.as_dict())
