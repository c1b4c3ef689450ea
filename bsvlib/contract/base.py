import copy
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Self

from bsvlib import exceptions, sighash
from bsvlib.vm import VM, TxContext
from bsvlib.address import PrivateKey
from bsvlib.script import Script
from bsvlib.transaction import Tx, TxIn, TxOut, UTXO
from bsvlib.utils import pprint_class
from bsvlib.const import DEFAULT_SIGHASH, DEFAULT_SEQUENCE, SIGNATURE_PLACEHOLDER_LENGTH, SIMULATION_SATOSHIS, \
                         MAX_SCRIPT_NUM_LENGTH_AFTER_GENESIS


logger = logging.getLogger(__name__)

params_T = Mapping[str, Any] | Any


class ContractType(Enum):
    P2PKH = 'p2pkh'
    P2PK = 'p2pk'
    P2MS = 'p2ms'
    P2RPH = 'p2rph'
    OP_RETURN = 'op_return'
    RAW = 'raw'


class BaseContract(ABC):
    """
    Script template. A contract is built in one of two modes:

        lock(satoshis, params)  ->  locking script, to_txout()
        unlock(utxo, params)    ->  unlocking script, to_txin()

    Params are the nested LockParams/UnlockParams dataclasses of the template (a mapping
    with their fields is accepted too), they are checked when the contract is created.
    Signatures need the transaction context (put_ctx), without it they are replaced by
    zero placeholders of the same size, so the script size is known before signing.
    """
    type: ClassVar[ContractType]
    LockParams: ClassVar[type]
    UnlockParams: ClassVar[Optional[type]] = None

    def __init__(self,
                 subject: int | UTXO,
                 params: Any,
                 *,
                 locking: bool,
                 sighash: int = DEFAULT_SIGHASH,
                 sequence: int = DEFAULT_SEQUENCE,
                 ctx: Optional[tuple[Tx, int]] = None) -> None:
        """
        :param subject: Satoshis (locking) or spent UTXO (unlocking).
        :param params: LockParams/UnlockParams instance.
        :param locking: Contract mode.
        :param sighash: Signature Hash flags of the signatures.
        :param sequence: Sequence of the input (unlocking).
        :param ctx: Transaction and input index the contract is signed for.
        """
        self.subject = subject
        self.params = params
        self.locking = locking
        self.sighash = sighash
        self.sequence = sequence
        self.ctx = ctx

    @classmethod
    def lock(cls, satoshis: int, params: Optional[params_T] = None, **options: Any) -> Self:
        return cls(satoshis, cls._build_params(cls.LockParams, params), locking=True, **options)

    @classmethod
    def unlock(cls, utxo: UTXO, params: Optional[params_T] = None, **options: Any) -> Self:
        if cls.UnlockParams is None:
            raise exceptions.UnlockingNotSupported(cls.__name__)
        return cls(utxo, cls._build_params(cls.UnlockParams, params), locking=False, **options)

    @classmethod
    def _build_params(cls, params_cls: type, params: Optional[params_T]) -> Any:
        if isinstance(params, params_cls):
            return params
        if params is not None and not isinstance(params, Mapping):
            raise exceptions.ContractParamsError(cls.__name__, f'mapping or {params_cls.__qualname__} expected')

        try:
            return params_cls(**(params or {}))
        except TypeError as e:  # missing or unexpected fields
            raise exceptions.ContractParamsError(cls.__name__, e) from None

    @classmethod
    def simulate(cls, lock_params: Optional[params_T] = None,
                 unlock_params: Optional[params_T] = None, **options: Any) -> tuple[bool, VM]:
        return simulate(cls, lock_params, unlock_params, **options)

    @property
    def utxo(self) -> UTXO:
        if not isinstance(self.subject, UTXO):
            raise exceptions.ContractModeError(type(self).__name__, 'lock', 'unlock')
        return self.subject

    @property
    def satoshis(self) -> int:
        return self.utxo.satoshis if isinstance(self.subject, UTXO) else self.subject

    @abstractmethod
    def locking_script(self) -> Script:
        ...

    def unlocking_script(self) -> Script:
        raise exceptions.UnlockingNotSupported(type(self).__name__)

    def to_script(self) -> Script:
        return self.locking_script() if self.locking else self.unlocking_script()

    def to_txin(self) -> TxIn:
        return self.utxo.to_txin(self.to_script(), self.sequence)

    def to_txout(self) -> TxOut:
        if not self.locking:
            raise exceptions.ContractModeError(type(self).__name__, 'unlock', 'lock')
        return TxOut(self.subject, self.to_script())

    def script_size(self) -> int:
        return len(self.to_script().serialize())

    def put_ctx(self, tx: Tx, vin: int) -> Self:
        """Copy of the contract bound to the input vin of tx"""
        contract = copy.copy(self)
        contract.ctx = tx, vin
        return contract

    def sign(self, private: PrivateKey, *, k: Optional[int] = None) -> bytes:
        """Script signature of the context input, zero placeholder without context"""
        if self.ctx is None:
            return bytes(SIGNATURE_PLACEHOLDER_LENGTH)

        tx, vin = self.ctx
        return sighash.sign(tx, vin, private, self.utxo.txout, self.sighash, k=k)

    def __repr__(self) -> str:
        return pprint_class(self, [self.subject], {
            'params': self.params,
            'locking': self.locking
        })


def simulate(contract: type[BaseContract],
             lock_params: Optional[params_T] = None,
             unlock_params: Optional[params_T] = None,
             **options: Any) -> tuple[bool, VM]:
    """
    Lock SIMULATION_SATOSHIS with the contract, spend them in a one input/one output
    transaction and evaluate unlocking + locking script with the post-genesis limits.

    :return: (is valid, VM state after the evaluation)
    """
    lock = contract.lock(SIMULATION_SATOSHIS, lock_params)
    prev_tx = Tx(outputs=[lock.to_txout()])
    utxo = UTXO.from_tx(prev_tx, 0)

    unlock = contract.unlock(utxo, unlock_params, **options)
    tx = Tx([unlock.to_txin()], [TxOut(0, Script())])
    unlock = unlock.put_ctx(tx, 0)
    tx.inputs[0].script = unlock.to_script()

    vm = VM(TxContext(tx, 0, utxo.txout), max_num_length=MAX_SCRIPT_NUM_LENGTH_AFTER_GENESIS)
    vm.evaluate(tx.inputs[0].script + utxo.txout.script)

    valid = vm.is_valid()
    logger.debug('%s simulation is %s%s', contract.__name__, 'valid' if valid else 'invalid',
                 f' ({vm.error})' if vm.error is not None else '')
    return valid, vm
