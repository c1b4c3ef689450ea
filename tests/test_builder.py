import pytest

from bsvlib import exceptions, sighash
from bsvlib.address import PrivateKey, Address
from bsvlib.transaction import TxOut, OutPoint, UTXO
from bsvlib.builder import TxBuilder
from bsvlib.contract import P2PKH, OpReturn
from bsvlib.vm import VM, TxContext
from .conftest import random_utxo


TX_HEX = '0100000001121a9ac1e082415cc3b8be7d0e44b8964d9e3585dcee05f079f038233714305e000000006a4730440220' \
         '0f674ba40b14b8f85b751ad854244a4199008c5b491b076df2eb6c3efd0be4bf022004b48ef0e656ee1873d07cb3b0' \
         '6858970de702f63935df2fbe8816f1a5f15e1e412103f81f8c8b90f5ec06ee4245eab166e8af903fc73a6dd7363668' \
         '7ef027870abe39ffffffff0210270000000000001976a914538fd179c8be0f289c730e33b5f6a3541be9668f88ac00' \
         '000000000000000e006a0568656c6c6f05776f726c6400000000'


@pytest.fixture
def builder(utxo: UTXO, private: PrivateKey, address: Address) -> TxBuilder:
    return TxBuilder(
        [P2PKH.unlock(utxo, {'private': private})],
        [P2PKH.lock(10000, {'address': address}), OpReturn.lock(0, {'data': [b'hello', b'world']})]
    )


@pytest.fixture
def fee_builder(private: PrivateKey, address: Address) -> TxBuilder:
    utxo = random_utxo(address.pkscript, 1000)
    return TxBuilder(
        [P2PKH.unlock(utxo, {'private': private})],
        [P2PKH.lock(1000, {'address': address}), OpReturn.lock(0, {'data': [b'foo', b'bar']})]
    )


class TestTxBuilder:
    def test_to_tx(self, builder: TxBuilder):
        assert builder.to_tx().serialize().hex() == TX_HEX

    def test_signatures(self, builder: TxBuilder, utxo: UTXO):
        tx = builder.to_tx()
        sig, pubkey = tx.inputs[0].script

        assert sighash.verify(sig, tx, 0, pubkey, utxo.txout)

        vm = VM(TxContext(tx, 0, utxo.txout))
        vm.evaluate(tx.inputs[0].script + utxo.txout.script)
        assert vm.is_valid()

    def test_sums(self, builder: TxBuilder):
        assert builder.input_sum == 11000
        assert builder.output_sum == 10000

    @pytest.mark.parametrize('rates, fee', [
        (1, 210),
        ({'data': 0.1, 'standard': 0.2}, 43),
        ({'mine': {'data': 0.1, 'standard': 0.2}, 'relay': {'data': 0.1, 'standard': 0.1}}, 43)
    ])
    def test_calc_required_fee(self, fee_builder: TxBuilder, rates, fee):
        assert fee_builder.calc_required_fee(rates) == fee

    def test_calc_required_fee_default(self, fee_builder: TxBuilder):
        assert fee_builder.calc_required_fee() == 107

    def test_change(self, builder: TxBuilder, address: Address):
        builder.outputs.pop()  # OP_RETURN
        tx = builder.change_to(address).to_tx()

        assert len(tx.outputs) == 2
        assert tx.outputs[1] == TxOut(886, address.pkscript)

    def test_change_below_dust(self, utxo: UTXO, private: PrivateKey, address: Address):
        builder = TxBuilder([P2PKH.unlock(utxo, {'private': private})], [P2PKH.lock(10800, {'address': address})])
        tx = builder.change_to(address.string).to_tx()
        assert len(tx.outputs) == 1

    def test_dust_threshold(self, builder: TxBuilder, address: Address):
        assert builder.dust_threshold(TxOut(0, address.pkscript)) == 135

    def test_add_contracts(self, utxo: UTXO, private: PrivateKey, address: Address):
        builder = TxBuilder().add_input(P2PKH.unlock(utxo, {'private': private})) \
                             .add_output(P2PKH.lock(1000, {'address': address}))
        assert len(builder.inputs) == len(builder.outputs) == 1

    def test_mode_errors(self, utxo: UTXO, private: PrivateKey, address: Address):
        with pytest.raises(exceptions.ContractModeError):
            TxBuilder().add_input(P2PKH.lock(1000, {'address': address}))
        with pytest.raises(exceptions.ContractModeError):
            TxBuilder().add_output(P2PKH.unlock(utxo, {'private': private}))

    def test_sort(self, private: PrivateKey, address: Address):
        utxos = [
            UTXO(OutPoint.from_txid('ff' * 32, 0), TxOut(1000, address.pkscript)),
            UTXO(OutPoint.from_txid('00' * 32, 1), TxOut(1000, address.pkscript))
        ]
        builder = TxBuilder(
            [P2PKH.unlock(u, {'private': private}) for u in utxos],
            [P2PKH.lock(1500, {'address': address}), P2PKH.lock(500, {'address': address})]
        )

        sorted_builder = builder.sort()
        assert [c.utxo for c in sorted_builder.inputs] == utxos[::-1]
        assert [c.satoshis for c in sorted_builder.outputs] == [500, 1500]
        assert [c.satoshis for c in builder.outputs] == [1500, 500]

        builder.sorted = True
        tx = builder.to_tx()
        assert [i.outpoint for i in tx.inputs] == [u.outpoint for u in utxos[::-1]]
        assert [o.satoshis for o in tx.outputs] == [500, 1500]
