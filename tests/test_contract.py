import pytest

from bsvlib import exceptions
from bsvlib.address import PrivateKey, Address
from bsvlib.script import Script, opcode
from bsvlib.transaction import Tx, TxOut, UTXO
from bsvlib.contract import BaseContract, ContractType, P2PKH, P2PK, P2MS, P2RPH, OpReturn, Raw, \
    TEMPLATES, get_template, generate_k, get_r
from .conftest import random_utxo


@pytest.fixture
def keys() -> list[PrivateKey]:
    return [PrivateKey() for _ in range(3)]


def _spend(contract: BaseContract) -> tuple[Tx, BaseContract]:
    tx = Tx([contract.to_txin()], [TxOut(0, Script())])
    return tx, contract.put_ctx(tx, 0)


class TestBaseContract:
    def test_lock(self, address: Address):
        contract = P2PKH.lock(1000, {'address': address})
        assert contract.locking
        assert contract.satoshis == 1000
        assert contract.to_txout() == TxOut(1000, address.pkscript)

    def test_lock_has_no_utxo(self, address: Address):
        contract = P2PKH.lock(1000, {'address': address})
        with pytest.raises(exceptions.ContractModeError):
            contract.utxo
        with pytest.raises(exceptions.ContractModeError):
            contract.to_txin()

    def test_unlock_has_no_txout(self, utxo: UTXO, private: PrivateKey):
        contract = P2PKH.unlock(utxo, {'private': private})
        assert not contract.locking
        assert contract.satoshis == 11000
        with pytest.raises(exceptions.ContractModeError):
            contract.to_txout()

    def test_params_instance(self, address: Address):
        params = P2PKH.LockParams(address)
        assert P2PKH.lock(1000, params).params is params

    @pytest.mark.parametrize('params', [None, {}, {'address': 'bad'}, {'address': 1}, {'addr': 'x'}, 'not a mapping'])
    def test_bad_params(self, params):
        with pytest.raises(exceptions.ContractParamsError):
            P2PKH.lock(1000, params)

    def test_placeholders(self, utxo: UTXO, private: PrivateKey):
        contract = P2PKH.unlock(utxo, {'private': private})
        script = contract.to_script()
        assert script[0] == bytes(71)
        assert script[1] == private.public.to_bytes()
        assert contract.script_size() == 106
        assert contract.to_txin().size == 147

    def test_put_ctx(self, utxo: UTXO, private: PrivateKey):
        contract = P2PKH.unlock(utxo, {'private': private})
        tx, signed = _spend(contract)

        assert contract.ctx is None
        assert signed.ctx == (tx, 0)
        assert signed.to_script()[0] != bytes(71)
        assert signed.to_script()[0][-1] == 0x41

    def test_options(self, utxo: UTXO, private: PrivateKey):
        contract = P2PKH.unlock(utxo, {'private': private}, sighash=0xc1, sequence=5)
        assert contract.to_txin().sequence == 5

        _, signed = _spend(contract)
        assert signed.to_script()[0][-1] == 0xc1

    def test_templates(self):
        assert TEMPLATES[ContractType.RAW] is Raw
        assert get_template('p2pkh') is P2PKH
        assert get_template(ContractType.OP_RETURN) is OpReturn
        with pytest.raises(ValueError):
            get_template('p2sh')


class TestP2PKH:
    def test_locking_script(self, address: Address):
        script = P2PKH.lock(1000, {'address': address.string}).to_script()
        assert script == address.pkscript

    def test_simulate(self, address: Address, private: PrivateKey):
        valid, vm = P2PKH.simulate({'address': address}, {'private': private})
        assert valid
        assert vm.stack == [b'\x01']

    def test_simulate_another_key(self, address: Address):
        valid, vm = P2PKH.simulate({'address': address}, {'private': PrivateKey()})
        assert not valid
        assert isinstance(vm.error, exceptions.VerifyFailed)

    def test_unlock_params(self, utxo: UTXO):
        with pytest.raises(exceptions.ContractParamsError):
            P2PKH.unlock(utxo, {'private': 'KyGHAK8MNohVPdeGPYXveiAbTfLARVrQuJVtd3qMqN41UEnTWDkF'})


class TestP2PK:
    def test_locking_script(self, private: PrivateKey):
        script = P2PK.lock(1000, {'pubkey': private.public.to_bytes().hex()}).to_script()
        assert script == Script(private.public.to_bytes(), opcode.OP_CHECKSIG)

    def test_simulate(self, private: PrivateKey):
        valid, _ = P2PK.simulate({'pubkey': private.public}, {'private': private})
        assert valid

    def test_simulate_another_key(self, private: PrivateKey):
        valid, vm = P2PK.simulate({'pubkey': private.public}, {'private': PrivateKey()})
        assert not valid
        assert vm.stack == [b'']

    def test_bad_pubkey(self):
        with pytest.raises(exceptions.ContractParamsError):
            P2PK.lock(1000, {'pubkey': '02ff'})


class TestP2MS:
    def test_locking_script(self, keys):
        pubkeys = [k.public.to_bytes() for k in keys]
        script = P2MS.lock(1000, {'pubkeys': pubkeys, 'threshold': 2}).to_script()
        assert script == Script(2, *pubkeys, 3, 'OP_CHECKMULTISIG')

    @pytest.mark.parametrize('signers', [[0, 1], [0, 2], [1, 2]])
    def test_simulate(self, keys, signers):
        valid, _ = P2MS.simulate(
            {'pubkeys': [k.public for k in keys], 'threshold': 2},
            {'privates': [keys[n] for n in signers]}
        )
        assert valid

    def test_simulate_wrong_order(self, keys):
        valid, _ = P2MS.simulate(
            {'pubkeys': [k.public for k in keys], 'threshold': 2},
            {'privates': [keys[1], keys[0]]}
        )
        assert not valid

    def test_simulate_not_enough_signatures(self, keys):
        valid, _ = P2MS.simulate(
            {'pubkeys': [k.public for k in keys], 'threshold': 2},
            {'privates': [keys[0]]}
        )
        assert not valid

    @pytest.mark.parametrize('threshold', [0, 4, True, '2'])
    def test_bad_threshold(self, keys, threshold):
        with pytest.raises(exceptions.ContractParamsError):
            P2MS.lock(1000, {'pubkeys': [k.public for k in keys], 'threshold': threshold})

    def test_no_keys(self):
        with pytest.raises(exceptions.ContractParamsError):
            P2MS.lock(1000, {'pubkeys': [], 'threshold': 1})
        with pytest.raises(exceptions.ContractParamsError):
            P2MS.unlock(random_utxo(Script()), {'privates': []})


class TestP2RPH:
    def test_get_r(self):
        # k = 1, r is x of the generator point
        assert get_r(1).hex() == '79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798'

    def test_simulate(self):
        k = generate_k()
        valid, _ = P2RPH.simulate({'r': get_r(k)}, {'k': k})
        assert valid

    def test_simulate_with_key(self, private: PrivateKey):
        k = generate_k()
        valid, _ = P2RPH.simulate({'r': get_r(k).hex()}, {'k': k, 'private': private})
        assert valid

    def test_simulate_another_k(self):
        valid, vm = P2RPH.simulate({'r': get_r(generate_k())}, {'k': generate_k()})
        assert not valid
        assert isinstance(vm.error, exceptions.VerifyFailed)

    @pytest.mark.parametrize('r', [b'', bytes(34), 1])
    def test_bad_r(self, r):
        with pytest.raises(exceptions.ContractParamsError):
            P2RPH.lock(1000, {'r': r})

    @pytest.mark.parametrize('k', [0, -1, 2 ** 256, 'k'])
    def test_bad_k(self, k):
        with pytest.raises(exceptions.ContractParamsError):
            P2RPH.unlock(random_utxo(Script()), {'k': k})


class TestOpReturn:
    def test_locking_script(self):
        contract = OpReturn.lock(0, {'data': [b'hello', 'world']})
        assert contract.to_script() == Script(opcode.OP_FALSE, opcode.OP_RETURN, b'hello', b'world')
        assert contract.to_txout().serialize().hex() == '00000000000000000e006a0568656c6c6f05776f726c64'

    def test_single_item(self):
        assert OpReturn.lock(0, {'data': 'hello'}).params.data == [b'hello']

    def test_not_unlockable(self):
        with pytest.raises(exceptions.UnlockingNotSupported):
            OpReturn.unlock(random_utxo(Script()))

        with pytest.raises(exceptions.UnlockingNotSupported):
            OpReturn.simulate({'data': [b'hello']})


class TestRaw:
    def test_script(self):
        assert Raw.lock(0, {'script': '935587'}).to_script() == Script('OP_ADD', 5, 'OP_EQUAL')

    def test_simulate(self):
        valid, vm = Raw.simulate({'script': Script('OP_ADD', 5, 'OP_EQUAL')}, {'script': Script(2, 3)})
        assert valid

        valid, vm = Raw.simulate({'script': Script('OP_ADD', 5, 'OP_EQUAL')}, {'script': Script(2, 2)})
        assert not valid
        assert vm.stack == [b'']

    def test_bad_script(self):
        with pytest.raises(exceptions.ContractParamsError):
            Raw.lock(0, {'script': '4c05ff'})
