import json

import pytest

from bsvlib import exceptions
from bsvlib.script import Script, opcode
from bsvlib.transaction import Tx, TxIn, TxOut, OutPoint, UTXO
from .conftest import random_utxo


TX_HEX = '010000000160f61507c2560a0246b53b96e9a8d28f66d82a8b028204b820de6d10c608d8ad030000006a473044022031a76' \
         '1006d72db7a088a4336c50ea4ca5a8aa76cf355e9ae3866ed3994d0748802205abaa90be33ef7211575b933c0f0a688c3ae17' \
         '5ab55cd8e75f0e07364e4e76d6412103d878146ae9f687c95ac05395db7dfdf2698bdc246158f8672257aab631e4c65cffff' \
         'ffff0123020000000000001976a9142eab375745d7799792b5c5f8b5a9406b8ad55bcc88ac00000000'
TX_ID = 'becdf988b4ebb8674018a14cbc1f48f6a131da14561a31bcfffa65aa9bf9cb6f'

COINBASE_HEX = '01000000010000000000000000000000000000000000000000000000000000000000000000ffffffff41031bc50a2f746' \
               '1616c2e636f6d2f506c656173652070617920302e3520736174732f627974652c20696e666f407461616c2e636f6d' \
               '0448aa01c3a015e815410100ffffffff01f072a32e000000001976a9147afaeecc8486abdc2473c48c711a57de958d' \
               '4bcf88ac00000000'
COINBASE_ID = 'c4cdfb732230ba81d91aec27535c1210c24b674b3f5fe6f812694d7f765a1d39'

TXOUT_HEX = 'efbee82f000000001976a914c4263eb96d88849f498d139424b59a0cba1005e888ac'


@pytest.fixture
def tx() -> Tx:
    return Tx.deserialize(TX_HEX)


@pytest.fixture
def coinbase() -> Tx:
    return Tx.deserialize(COINBASE_HEX)


class TestOutPoint:
    def test_txid(self):
        outpoint = OutPoint.from_txid(TX_ID, 1)
        assert outpoint.txid == TX_ID
        assert outpoint.hash == bytes.fromhex(TX_ID)[::-1]
        assert repr(outpoint) == f'{TX_ID}:1'

    def test_serialize(self):
        outpoint = OutPoint.from_txid(TX_ID, 1)
        assert OutPoint.unpack(outpoint.serialize() + b'rest') == (outpoint, b'rest')

    def test_null(self):
        assert OutPoint.null().is_null()
        assert not OutPoint(bytes(32), 0).is_null()

    def test_incorrect_hash(self):
        with pytest.raises(AssertionError):
            OutPoint(bytes(31), 0)


class TestTxOut:
    def test_deserialize(self):
        txout = TxOut.deserialize(TXOUT_HEX)
        assert txout.satoshis == 803782383
        assert len(txout.script) == 5
        assert txout.script[0] is opcode.OP_DUP
        assert txout.serialize().hex() == TXOUT_HEX
        assert txout.size == len(TXOUT_HEX) // 2

    def test_script_conversion(self):
        txout = TxOut(1000, '006a')
        assert isinstance(txout.script, Script)
        assert txout.script == Script('OP_FALSE', 'OP_RETURN')

    def test_trailing_data(self):
        with pytest.raises(exceptions.TrailingData):
            TxOut.deserialize(TXOUT_HEX + '00')


class TestTx:
    def test_deserialize(self, tx: Tx):
        assert tx.version == 1
        assert tx.locktime == 0
        assert len(tx.inputs) == 1
        assert len(tx.outputs) == 1

        inp = tx.inputs[0]
        assert inp.outpoint.txid == 'add808c6106dde20b80482028b2ad8668fd2a8e9963bb546020a56c20715f660'
        assert inp.outpoint.index == 3
        assert inp.sequence == 0xffffffff
        assert len(inp.script) == 2

        assert tx.outputs[0].satoshis == 547
        assert tx.outputs[0].script.serialize().hex() == '76a9142eab375745d7799792b5c5f8b5a9406b8ad55bcc88ac'

    def test_serialize(self, tx: Tx):
        assert tx.serialize().hex() == TX_HEX
        assert tx.size == len(TX_HEX) // 2

    def test_txid(self, tx: Tx):
        assert tx.txid == TX_ID
        assert tx.hash == bytes.fromhex(TX_ID)[::-1]
        assert not tx.is_coinbase()

    def test_coinbase(self, coinbase: Tx):
        assert coinbase.is_coinbase()
        assert coinbase.inputs[0].script.frozen
        assert coinbase.serialize().hex() == COINBASE_HEX
        assert coinbase.txid == COINBASE_ID

    @pytest.mark.parametrize('outpoints', [
        [OutPoint.null(), OutPoint.from_txid(TX_ID, 0)],
        [OutPoint(bytes(32), 0)],
        [OutPoint.from_txid(TX_ID, 0xffffffff)],
        []
    ], ids=['two inputs', 'null hash index 0', 'max index', 'no inputs'])
    def test_not_coinbase(self, outpoints):
        tx = Tx([TxIn(outpoint) for outpoint in outpoints], [TxOut(0, Script())])
        assert not tx.is_coinbase()

    def test_trailing_data(self):
        with pytest.raises(exceptions.TrailingData):
            Tx.deserialize(TX_HEX + '00')

    def test_truncated(self):
        with pytest.raises(exceptions.TruncatedInput):
            Tx.deserialize(TX_HEX[:-2])

    def test_copy(self, tx: Tx):
        copy = tx.copy()
        assert copy == tx
        assert copy is not tx

        copy.outputs[0].satoshis = 1
        copy.inputs[0].script.append('OP_NOP')
        assert tx.outputs[0].satoshis == 547
        assert tx.serialize().hex() == TX_HEX

    def test_sort(self):
        a = OutPoint.from_txid('00' * 31 + '01', 1)
        b = OutPoint.from_txid('00' * 31 + '01', 0)
        c = OutPoint.from_txid('ff' + '00' * 31, 0)
        tx = Tx([TxIn(c), TxIn(a), TxIn(b)], [TxOut(2, '51'), TxOut(1, '52'), TxOut(1, '51')])

        sorted_tx = tx.sort()
        assert [i.outpoint for i in sorted_tx.inputs] == [b, a, c]
        assert [(o.satoshis, o.script.serialize()) for o in sorted_tx.outputs] == [(1, b'\x51'), (1, b'\x52'),
                                                                                   (2, b'\x51')]
        # original isn't changed
        assert tx.inputs[0].outpoint == c

    def test_as_dict(self, tx: Tx):
        d = tx.as_dict()
        assert d['txid'] == TX_ID
        assert d['inputs'][0]['vout'] == 3
        assert d['outputs'][0] == {
            'satoshis': 547,
            'script': '76a9142eab375745d7799792b5c5f8b5a9406b8ad55bcc88ac'
        }
        assert json.loads(tx.as_json()) == d


class TestUTXO:
    def test_from_tx(self, tx: Tx):
        utxo = UTXO.from_tx(tx, 0)
        assert utxo.outpoint == OutPoint.from_txid(TX_ID, 0)
        assert utxo.satoshis == 547

    @pytest.mark.parametrize('params', [
        {'txid': TX_ID, 'vout': 2, 'satoshis': 1000, 'script': '51'},
        {'txid': TX_ID, 'outputIndex': 2, 'amount': 1000, 'script': '51'}
    ])
    def test_from_params(self, params):
        utxo = UTXO.from_params(params)
        assert utxo.outpoint == OutPoint.from_txid(TX_ID, 2)
        assert utxo.txout == TxOut(1000, '51')

    def test_to_txin(self):
        utxo = random_utxo(Script('OP_1'))
        txin = utxo.to_txin(Script(b'sig'), 5)
        assert txin.outpoint == utxo.outpoint
        assert txin.prevout is utxo.txout
        assert txin.sequence == 5
        assert txin.script == Script(b'sig')
