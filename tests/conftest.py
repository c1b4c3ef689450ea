from dataclasses import dataclass

import pytest

from bsvlib.address import PrivateKey, Address
from bsvlib.script import Script
from bsvlib.transaction import Tx, TxIn, TxOut, OutPoint, UTXO
from bsvlib.const import NetworkType


WIF = 'KyGHAK8MNohVPdeGPYXveiAbTfLARVrQuJVtd3qMqN41UEnTWDkF'
PRIVATE_HEX = '3cff04633088622e4599dc2ebf843f82cef3463b910d34a752a13622abae379b'
PUBKEY_HEX = '03f81f8c8b90f5ec06ee4245eab166e8af903fc73a6dd73636687ef027870abe39'
HASH160_HEX = '538fd179c8be0f289c730e33b5f6a3541be9668f'
ADDRESSES = {
    NetworkType.MAIN: '18cqNbEBxkAttxcZLuH9LWhZJPd1BNu1A5',
    NetworkType.TEST: 'mo8nfeKAmmc9g56B4UFXARutAPDi1sr7tH'
}

PREV_SCRIPT_HEX = '76a9142f69328966b33c8d834c024718fee701658b374788ac'


@dataclass
class sigobj:
    """Spending tx with one input and no outputs, the spent output is in prev"""
    prev: Tx
    tx: Tx
    txout: TxOut
    sighash: int
    hash4sign: str
    signature: str  # base64 script signature made with WIF


def pytest_configure(config: pytest.Config):
    config.addinivalue_line('markers', 'slow: script heavy tests (full push tx check)')


@pytest.fixture(params=[NetworkType.MAIN, NetworkType.TEST], ids=lambda n: n.value)
def network(request) -> NetworkType:
    return request.param


@pytest.fixture
def private() -> PrivateKey:
    return PrivateKey.from_wif(WIF)


@pytest.fixture
def address(private: PrivateKey) -> Address:
    return private.public.get_address()


@pytest.fixture
def prev_txout() -> TxOut:
    return TxOut(50000, PREV_SCRIPT_HEX)


@pytest.fixture
def sig_vector(prev_txout: TxOut) -> sigobj:
    prev = Tx([], [prev_txout])
    tx = Tx([TxIn(OutPoint(prev.hash, 0))], [])
    return sigobj(
        prev,
        tx,
        prev_txout,
        0x41,
        'b8424e696736e3c45eb2da7d0d61bc3571ebdc977aea5cc764229c1f3c3d173b',
        'MEUCIQDjRz9K3GUXhKU2HV3/fQXIz6L4+A6RxKKEsL+N4CPgCAIgSI6qg/XCyTsqNLWIG77OrKobfBsDt95g71EnSbSh3DZB'
    )


@pytest.fixture
def utxo(address: Address) -> UTXO:
    return UTXO(
        OutPoint.from_txid('5e3014372338f079f005eedc85359e4d96b8440e7dbeb8c35c4182e0c19a1a12', 0),
        TxOut(11000, address.pkscript)
    )


def random_utxo(script: Script, satoshis: int = 1000) -> UTXO:
    return UTXO(OutPoint(bytes(range(32)), 0), TxOut(satoshis, script))
