from typing import Iterable, Optional, Self

from bsvlib import exceptions
from bsvlib.transaction import Tx
from bsvlib.utils import SupportsCopy, SupportsSerialize, TypeConverter, \
                         d_sha256, sint32, uint32, varint, take, ensure_bytes, pprint_class
from bsvlib.const import SHA256_LENGTH


class BlockHeader(SupportsCopy, SupportsSerialize):
    """80 bytes block header, hashes are in internal byte order"""

    version: TypeConverter[int, sint32] = TypeConverter(sint32)
    time: TypeConverter[int, uint32] = TypeConverter(uint32)
    bits: TypeConverter[int, uint32] = TypeConverter(uint32)
    nonce: TypeConverter[int, uint32] = TypeConverter(uint32)

    def __init__(self, version: int, prev_hash: bytes, merkle_root: bytes, time: int, bits: int, nonce: int) -> None:
        self.version = version
        self.prev_hash = prev_hash
        self.merkle_root = merkle_root
        self.time = time
        self.bits = bits
        self.nonce = nonce

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        version, raw = sint32.pop(raw)
        prev_hash, raw = take(raw, SHA256_LENGTH)
        merkle_root, raw = take(raw, SHA256_LENGTH)
        time, raw = uint32.pop(raw)
        bits, raw = uint32.pop(raw)
        nonce, raw = uint32.pop(raw)
        return cls(version, prev_hash, merkle_root, time, bits, nonce), raw

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Self:
        header, rest = cls.unpack(ensure_bytes(raw))
        if rest:
            raise exceptions.TrailingData(len(rest), cls.__name__)
        return header

    @property
    def hash(self) -> bytes:
        return d_sha256(self.serialize())

    @property
    def id(self) -> str:
        """Block hash as it's displayed (reversed)"""
        return self.hash[::-1].hex()

    def copy(self) -> Self:
        return type(self)(self.version, self.prev_hash, self.merkle_root, self.time, self.bits, self.nonce)

    def serialize(self) -> bytes:
        return b''.join([
            self.version.pack(),
            self.prev_hash,
            self.merkle_root,
            self.time.pack(),
            self.bits.pack(),
            self.nonce.pack()
        ])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockHeader):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __repr__(self) -> str:
        return pprint_class(self, kwargs={
            'version': self.version,
            'prev_hash': self.prev_hash.hex(),
            'merkle_root': self.merkle_root.hex(),
            'time': self.time,
            'bits': self.bits,
            'nonce': self.nonce
        })


def merkle_root(hashes: Iterable[bytes]) -> bytes:
    """Merkle root of the hashes, odd levels are completed with the copy of the last hash"""
    nodes = list(hashes)
    assert nodes, 'at least one hash is required'

    while len(nodes) > 1:
        if len(nodes) % 2:
            nodes.append(nodes[-1])
        nodes = [d_sha256(nodes[n] + nodes[n + 1]) for n in range(0, len(nodes), 2)]

    return nodes[0]


class Block(SupportsSerialize):
    def __init__(self, header: Optional[BlockHeader], txs: Iterable[Tx] = ()) -> None:
        self.header = header
        self.txs = list(txs)

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        header, raw = BlockHeader.unpack(raw)
        count, raw = varint.unpack(raw)

        txs = []
        for _ in range(count):
            tx, raw = Tx.unpack(raw)
            txs.append(tx)

        return cls(header, txs), raw

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Self:
        block, rest = cls.unpack(ensure_bytes(raw))
        if rest:
            raise exceptions.TrailingData(len(rest), cls.__name__)
        return block

    def calc_merkle_root(self) -> bytes:
        return merkle_root(tx.hash for tx in self.txs)

    def validate_merkle_root(self) -> bool:
        return self.header is not None and bool(self.txs) and self.calc_merkle_root() == self.header.merkle_root

    def serialize(self) -> bytes:
        assert self.header is not None, 'block without header can\'t be serialized'
        return self.header.serialize() + varint(len(self.txs)).pack() + b''.join(tx.serialize() for tx in self.txs)

    def __repr__(self) -> str:
        return pprint_class(self, kwargs={
            'header': self.header,
            'txs': [tx.txid for tx in self.txs]
        })
