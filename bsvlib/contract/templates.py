from dataclasses import dataclass, field
from typing import Iterable

from ecdsa import SECP256k1
from ecdsa.util import randrange

from bsvlib import exceptions
from bsvlib.script import Script, opcode
from bsvlib.address import Address, PrivateKey, PublicKey
from bsvlib.contract.base import BaseContract, ContractType
from bsvlib.utils import int2bytes, op_hash160
from bsvlib.const import MAX_ORDER


def _ensure_private(contract: str, private: PrivateKey) -> None:
    if not isinstance(private, PrivateKey):
        raise exceptions.ContractParamsError(contract, f'PrivateKey expected, {type(private).__name__} received')


def _to_pubkey(contract: str, pubkey: PublicKey | bytes | str) -> PublicKey:
    if isinstance(pubkey, PublicKey):
        return pubkey
    try:
        return PublicKey.from_bytes(bytes.fromhex(pubkey) if isinstance(pubkey, str) else pubkey)
    except (exceptions.InvalidPublicKey, TypeError, ValueError) as e:
        raise exceptions.ContractParamsError(contract, f'bad public key ({e})') from None


class P2PKH(BaseContract):
    """Pay to public key hash: OP_DUP OP_HASH160 <hash160> OP_EQUALVERIFY OP_CHECKSIG"""
    type = ContractType.P2PKH

    @dataclass
    class LockParams:
        address: Address | str

        def __post_init__(self) -> None:
            if isinstance(self.address, Address):
                return
            try:
                self.address = Address.from_string(self.address)
            except (exceptions.InvalidAddress, AttributeError) as e:
                raise exceptions.ContractParamsError('P2PKH', e) from None

    @dataclass
    class UnlockParams:
        private: PrivateKey

        def __post_init__(self) -> None:
            _ensure_private('P2PKH', self.private)

    def locking_script(self) -> Script:
        return self.params.address.pkscript.copy()

    def unlocking_script(self) -> Script:
        private = self.params.private
        return Script(self.sign(private), private.public.to_bytes())


class P2PK(BaseContract):
    """Pay to public key: <pubkey> OP_CHECKSIG"""
    type = ContractType.P2PK

    @dataclass
    class LockParams:
        pubkey: PublicKey | bytes | str

        def __post_init__(self) -> None:
            self.pubkey = _to_pubkey('P2PK', self.pubkey)

    @dataclass
    class UnlockParams:
        private: PrivateKey

        def __post_init__(self) -> None:
            _ensure_private('P2PK', self.private)

    def locking_script(self) -> Script:
        return Script(self.params.pubkey.to_bytes(), opcode.OP_CHECKSIG)

    def unlocking_script(self) -> Script:
        return Script(self.sign(self.params.private))


class P2MS(BaseContract):
    """Bare multisig: <threshold> <pubkey>... <count> OP_CHECKMULTISIG"""
    type = ContractType.P2MS

    @dataclass
    class LockParams:
        pubkeys: list[PublicKey | bytes | str]
        threshold: int

        def __post_init__(self) -> None:
            self.pubkeys = [_to_pubkey('P2MS', pk) for pk in self.pubkeys]
            if not self.pubkeys:
                raise exceptions.ContractParamsError('P2MS', 'at least one public key is required')
            if isinstance(self.threshold, bool) or not isinstance(self.threshold, int):
                raise exceptions.ContractParamsError('P2MS', 'threshold must be int')
            if not 0 < self.threshold <= len(self.pubkeys):
                raise exceptions.ContractParamsError(
                    'P2MS', f'threshold must be in range 1..{len(self.pubkeys)}, {self.threshold} received'
                )

    @dataclass
    class UnlockParams:
        privates: list[PrivateKey]

        def __post_init__(self) -> None:
            self.privates = list(self.privates)
            if not self.privates:
                raise exceptions.ContractParamsError('P2MS', 'at least one private key is required')
            for private in self.privates:
                _ensure_private('P2MS', private)

    def locking_script(self) -> Script:
        pubkeys = self.params.pubkeys
        return Script(self.params.threshold, *(pk.to_bytes() for pk in pubkeys), len(pubkeys), opcode.OP_CHECKMULTISIG)

    def unlocking_script(self) -> Script:
        # OP_0 is consumed by the CHECKMULTISIG extra pop
        return Script(opcode.OP_0, *(self.sign(private) for private in self.params.privates))


def generate_k() -> int:
    """Random nonce for the R-puzzle"""
    return randrange(SECP256k1.order)


def get_r(k: int) -> bytes:
    """r value of the signatures made with k, as it is in DER"""
    return int2bytes((SECP256k1.generator * k).x(), signed=True)


class P2RPH(BaseContract):
    """
    Pay to R-puzzle hash. The output is spent by any key, but the signature
    must be made with the nonce k whose r value hash is in the locking script.

    Unlocking script: <sig> <sig with k> <pubkey>
    """
    type = ContractType.P2RPH

    @dataclass
    class LockParams:
        r: bytes | str

        def __post_init__(self) -> None:
            if isinstance(self.r, str):
                self.r = bytes.fromhex(self.r)
            if not isinstance(self.r, bytes) or not 0 < len(self.r) <= 33:
                raise exceptions.ContractParamsError('P2RPH', 'r must be 1-33 bytes')

    @dataclass
    class UnlockParams:
        k: int
        private: PrivateKey = field(default_factory=PrivateKey)

        def __post_init__(self) -> None:
            if isinstance(self.k, bool) or not isinstance(self.k, int) or not 0 < self.k < MAX_ORDER:
                raise exceptions.ContractParamsError('P2RPH', 'k must be int in range 1..n-1')
            _ensure_private('P2RPH', self.private)

    def locking_script(self) -> Script:
        script = Script(opcode.OP_OVER, opcode.OP_3, opcode.OP_SPLIT, opcode.OP_NIP)
        # r length and r
        script += [opcode.OP_1, opcode.OP_SPLIT, opcode.OP_SWAP, opcode.OP_SPLIT, opcode.OP_DROP]
        script += [opcode.OP_HASH160, op_hash160(self.params.r), opcode.OP_EQUALVERIFY]
        script += [opcode.OP_TUCK, opcode.OP_CHECKSIGVERIFY, opcode.OP_CHECKSIG]
        return script

    def unlocking_script(self) -> Script:
        private = self.params.private
        return Script(self.sign(private), self.sign(private, k=self.params.k), private.public.to_bytes())


class OpReturn(BaseContract):
    """Unspendable data output: OP_FALSE OP_RETURN <data>..."""
    type = ContractType.OP_RETURN

    @dataclass
    class LockParams:
        data: bytes | str | Iterable[bytes | str]

        def __post_init__(self) -> None:
            items = [self.data] if isinstance(self.data, bytes | str) else self.data
            try:
                self.data = [i.encode('utf8') if isinstance(i, str) else bytes(i) for i in items]
            except TypeError as e:
                raise exceptions.ContractParamsError('OpReturn', e) from None

    def locking_script(self) -> Script:
        return Script(opcode.OP_FALSE, opcode.OP_RETURN, *self.params.data)


class Raw(BaseContract):
    """Prebuilt script"""
    type = ContractType.RAW

    @dataclass
    class LockParams:
        script: Script | bytes | str

        def __post_init__(self) -> None:
            if isinstance(self.script, Script):
                return
            try:
                self.script = Script.deserialize(self.script)
            except (exceptions.DecodeError, TypeError, ValueError) as e:
                raise exceptions.ContractParamsError('Raw', e) from None

    UnlockParams = LockParams

    def locking_script(self) -> Script:
        return self.params.script.copy()

    def unlocking_script(self) -> Script:
        return self.params.script.copy()


TEMPLATES: dict[ContractType, type[BaseContract]] = {
    c.type: c for c in (P2PKH, P2PK, P2MS, P2RPH, OpReturn, Raw)
}


def get_template(contract_type: ContractType | str) -> type[BaseContract]:
    return TEMPLATES[ContractType(contract_type)]
