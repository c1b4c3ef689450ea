from typing import Iterable, Optional, Self

from bsvlib import exceptions
from bsvlib.block import BlockHeader
from bsvlib.transaction import Tx
from bsvlib.utils import SupportsSerialize, d_sha256, varint, varbin, take, ensure_bytes, pprint_class
from bsvlib.const import SHA256_LENGTH, MERKLE_PROOF_TX_FLAG, MERKLE_PROOF_TARGET_MASK, MERKLE_PROOF_TARGET_HASH, \
                         MERKLE_PROOF_TARGET_HEADER, MERKLE_PROOF_TARGET_MERKLE_ROOT


class MerkleProof(SupportsSerialize):
    """
    TSC merkle proof of a transaction inclusion.

    Subject is a full transaction or its hash, target is a block header, a block hash or a merkle root.
    None in nodes stands for the duplicated hash of the current level ("*").
    """

    def __init__(self,
                 index: int,
                 subject: Tx | bytes,
                 target: BlockHeader | bytes,
                 nodes: Iterable[Optional[bytes]] = (),
                 flags: Optional[int] = None) -> None:
        self.index = index
        self.subject = subject
        self.target = target
        self.nodes = list(nodes)

        if flags is None:
            flags = MERKLE_PROOF_TX_FLAG if isinstance(subject, Tx) else 0
            flags |= MERKLE_PROOF_TARGET_HEADER if isinstance(target, BlockHeader) else MERKLE_PROOF_TARGET_HASH
        self.flags = flags

    @classmethod
    def unpack(cls, raw: bytes) -> tuple[Self, bytes]:
        flags_b, raw = take(raw, 1)
        flags = flags_b[0]
        index, raw = varint.unpack(raw)

        subject: Tx | bytes
        if flags & MERKLE_PROOF_TX_FLAG:
            tx_b, raw = varbin.unpack(raw)
            subject = Tx.deserialize(tx_b)
        else:
            subject, raw = take(raw, SHA256_LENGTH)

        target: BlockHeader | bytes
        target_type = flags & MERKLE_PROOF_TARGET_MASK
        if target_type == MERKLE_PROOF_TARGET_HEADER:
            target, raw = BlockHeader.unpack(raw)
        elif target_type in (MERKLE_PROOF_TARGET_HASH, MERKLE_PROOF_TARGET_MERKLE_ROOT):
            target, raw = take(raw, SHA256_LENGTH)
        else:
            raise exceptions.InvalidMerkleProof(f'unknown target type 0x{target_type:02x}')

        count, raw = varint.unpack(raw)
        nodes: list[Optional[bytes]] = []
        for _ in range(count):
            node_type, raw = take(raw, 1)
            if node_type == b'\x00':
                node, raw = take(raw, SHA256_LENGTH)
                nodes.append(node)
            elif node_type == b'\x01':
                nodes.append(None)
            else:
                raise exceptions.InvalidMerkleProof(f'unknown node type 0x{node_type.hex()}')

        return cls(index, subject, target, nodes, flags), raw

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Self:
        proof, rest = cls.unpack(ensure_bytes(raw))
        if rest:
            raise exceptions.TrailingData(len(rest), cls.__name__)
        return proof

    @property
    def tx_hash(self) -> bytes:
        return self.subject.hash if isinstance(self.subject, Tx) else self.subject

    @property
    def target_type(self) -> int:
        return self.flags & MERKLE_PROOF_TARGET_MASK

    def calc_merkle_root(self) -> bytes:
        """Merkle root built from the subject hash up through the nodes"""
        h, index = self.tx_hash, self.index
        for node in self.nodes:
            odd = index % 2
            if node is None:
                if odd:
                    raise exceptions.InvalidMerkleProof(f'duplicated node at odd index {index}')
                node = h
            h = d_sha256(node + h if odd else h + node)
            index //= 2
        return h

    def validate(self) -> bool:
        """Compare the computed root with the target, a block hash target can't be checked without the header"""
        if isinstance(self.target, BlockHeader):
            return self.calc_merkle_root() == self.target.merkle_root
        if self.target_type == MERKLE_PROOF_TARGET_MERKLE_ROOT:
            return self.calc_merkle_root() == self.target
        return False

    def serialize(self) -> bytes:
        subject = varbin(self.subject.serialize()).pack() if isinstance(self.subject, Tx) else self.subject
        target = self.target.serialize() if isinstance(self.target, BlockHeader) else self.target
        nodes = b''.join(b'\x01' if node is None else b'\x00' + node for node in self.nodes)
        return b''.join([
            bytes([self.flags]),
            varint(self.index).pack(),
            subject,
            target,
            varint(len(self.nodes)).pack(),
            nodes
        ])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MerkleProof):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __repr__(self) -> str:
        return pprint_class(self, kwargs={
            'index': self.index,
            'subject': self.subject.txid if isinstance(self.subject, Tx) else self.subject.hex(),
            'target': self.target if isinstance(self.target, BlockHeader) else self.target.hex(),
            'nodes': ['*' if node is None else node.hex() for node in self.nodes],
            'flags': self.flags
        })
