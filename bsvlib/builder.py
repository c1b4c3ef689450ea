import copy
import logging
from math import ceil, floor
from typing import Iterable, Mapping, Optional, Self

from bsvlib import exceptions
from bsvlib.script import Script, opcode
from bsvlib.address import Address
from bsvlib.transaction import Tx, TxOut
from bsvlib.contract.base import BaseContract
from bsvlib.utils import varint, pprint_class
from bsvlib.const import DEFAULT_FEE_RATES, DEFAULT_LOCKTIME, DUST_INPUT_SIZE, DUST_MULTIPLIER


logger = logging.getLogger(__name__)

# sat/byte, {'data': ..., 'standard': ...} or {'mine': {...}, 'relay': {...}}
rates_T = float | Mapping[str, float] | Mapping[str, Mapping[str, float]]


def _get_rates(rates: rates_T, kind: str = 'mine') -> Mapping[str, float]:
    if isinstance(rates, int | float):
        return {'data': rates, 'standard': rates}
    return rates.get(kind, rates.get('mine', rates))


def _is_data(txout: TxOut) -> bool:
    return txout.script[:2] == [opcode.OP_FALSE, opcode.OP_RETURN]


class TxBuilder:
    """
    Transaction from contracts: inputs are unlocking contracts, outputs are locking ones.

        >>> builder = TxBuilder([P2PKH.unlock(utxo, {'private': key})],
        ...                     [OpReturn.lock(0, {'data': [b'hello']})])
        >>> tx = builder.change_to(address).to_tx()
    """

    def __init__(self,
                 inputs: Iterable[BaseContract] = (),
                 outputs: Iterable[BaseContract] = (),
                 change_script: Optional[Script] = None,
                 lock_time: int = DEFAULT_LOCKTIME,
                 *,
                 sorted: bool = False,
                 rates: rates_T = DEFAULT_FEE_RATES) -> None:
        """
        :param inputs: Unlocking contracts.
        :param outputs: Locking contracts.
        :param change_script: Script of the change output, no change output if None.
        :param lock_time: Transaction locktime.
        :param sorted: Apply BIP-69 ordering in to_tx().
        :param rates: Fee rates used for the change.
        """
        self.inputs: list[BaseContract] = []
        self.outputs: list[BaseContract] = []
        self.change_script = change_script
        self.lock_time = lock_time
        self.sorted = sorted
        self.rates = rates

        for contract in inputs:
            self.add_input(contract)
        for contract in outputs:
            self.add_output(contract)

    def add_input(self, contract: BaseContract) -> Self:
        if contract.locking:
            raise exceptions.ContractModeError(type(contract).__name__, 'lock', 'unlock')
        self.inputs.append(contract)
        return self

    def add_output(self, contract: BaseContract) -> Self:
        if not contract.locking:
            raise exceptions.ContractModeError(type(contract).__name__, 'unlock', 'lock')
        self.outputs.append(contract)
        return self

    def change_to(self, address: Address | str) -> Self:
        address = address if isinstance(address, Address) else Address.from_string(address)
        self.change_script = address.pkscript.copy()
        return self

    @property
    def input_sum(self) -> int:
        return sum(c.utxo.satoshis for c in self.inputs)

    @property
    def output_sum(self) -> int:
        return sum(c.satoshis for c in self.outputs)

    def calc_required_fee(self, rates: rates_T = DEFAULT_FEE_RATES) -> int:
        """
        Fee of the transaction without change, every part is rounded up separately.
        OP_RETURN outputs are paid with the data rate, everything else with the standard one.
        """
        rates = _get_rates(rates)
        parts = [
            ('standard', 4 + 4),  # version, locktime
            ('standard', len(varint(len(self.inputs)).pack())),
            ('standard', len(varint(len(self.outputs)).pack())),
            *(('standard', c.to_txin().size) for c in self.inputs)
        ]

        for contract in self.outputs:
            txout = contract.to_txout()
            parts.append(('data' if _is_data(txout) else 'standard', txout.size))

        return sum(ceil(rates[kind] * size) for kind, size in parts)

    def dust_threshold(self, txout: TxOut) -> int:
        return DUST_MULTIPLIER * floor((txout.size + DUST_INPUT_SIZE) * _get_rates(self.rates, 'relay')['standard'])

    def get_change_txout(self) -> Optional[TxOut]:
        if self.change_script is None:
            return None

        txout = TxOut(0, self.change_script)
        fee = self.calc_required_fee(self.rates) + ceil(txout.size * _get_rates(self.rates)['standard'])
        change = self.input_sum - self.output_sum - fee

        if change < (dust := self.dust_threshold(txout)):
            logger.debug('change %d is below the dust threshold %d (fee %d), no change output', change, dust, fee)
            return None

        logger.debug('change output %d satoshis (fee %d)', change, fee)
        txout.satoshis = change
        return txout

    def sort(self) -> Self:
        """BIP-69 ordering of the contracts, returns a new builder"""
        builder = copy.copy(self)
        builder.inputs = sorted(self.inputs, key=lambda c: (c.utxo.outpoint.hash[::-1], c.utxo.outpoint.index))
        builder.outputs = sorted(self.outputs, key=lambda c: (c.satoshis, c.to_script().serialize()))
        return builder

    def to_tx(self) -> Tx:
        """
        Build with the unsigned scripts (placeholders) first, add the change and
        then sign every input with the final transaction.
        """
        builder = self.sort() if self.sorted else self

        tx = Tx([c.to_txin() for c in builder.inputs], [c.to_txout() for c in builder.outputs],
                locktime=builder.lock_time)
        if (change := builder.get_change_txout()) is not None:
            tx.outputs.append(change)

        for vin, contract in enumerate(builder.inputs):
            tx.inputs[vin] = contract.put_ctx(tx, vin).to_txin()

        return tx

    def __repr__(self) -> str:
        return pprint_class(self, kwargs={
            'inputs': self.inputs,
            'outputs': self.outputs,
            'change_script': self.change_script,
            'lock_time': self.lock_time
        })
