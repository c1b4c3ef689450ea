import base64

import pytest

from bsvlib import exceptions, sighash
from bsvlib.address import PrivateKey
from bsvlib.script import Script
from bsvlib.transaction import Tx, TxIn, TxOut, OutPoint
from bsvlib.const import SIGHASHES
from .conftest import sigobj


SIGNATURE_HEX = '3045022100e3473f4adc651784a5361d5dff7d05c8cfa2f8f80e91c4a284b0bf8de023e0080220488eaa83f5c2c' \
                '93b2a34b5881bbeceacaa1b7c1b03b7de60ef512749b4a1dc3641'


def _two_in_two_out() -> Tx:
    return Tx(
        [TxIn(OutPoint(bytes([n]) * 32, n), sequence=0xfffffffe) for n in range(2)],
        [TxOut(1000 * (n + 1), '51') for n in range(2)]
    )


class TestPreimage:
    def test_hash4sign(self, sig_vector: sigobj):
        digest = sighash.get_hash4sign(sig_vector.tx, 0, sig_vector.txout, sig_vector.sighash)
        assert digest.hex() == sig_vector.hash4sign

    def test_preimage_fields(self, sig_vector: sigobj):
        raw = sighash.get_preimage(sig_vector.tx, 0, sig_vector.txout, sig_vector.sighash)
        assert len(raw) == 182

        preimage = sighash.Preimage.deserialize(raw)
        assert preimage.version == 1
        assert preimage.outpoint == OutPoint(sig_vector.prev.hash, 0)
        assert preimage.script == sig_vector.txout.script.serialize()
        assert preimage.satoshis == 50000
        assert preimage.sequence == 0xffffffff
        assert preimage.hash_outputs == sighash.d_sha256(b'')
        assert preimage.sighash == 0x41
        assert preimage.serialize() == raw

    def test_prevout_from_input(self, sig_vector: sigobj):
        tx = sig_vector.tx.copy()
        tx.inputs[0].prevout = sig_vector.txout
        assert sighash.get_hash4sign(tx, 0, sighash=sig_vector.sighash).hex() == sig_vector.hash4sign

    def test_missing_prevout(self, sig_vector: sigobj):
        with pytest.raises(exceptions.MissingPrevout):
            sighash.get_preimage(sig_vector.tx, 0)

    def test_anyonecanpay(self):
        tx = _two_in_two_out()
        flag = SIGHASHES['all'] | SIGHASHES['forkid'] | SIGHASHES['anyonecanpay']
        preimage = sighash.Preimage.from_tx(tx, 1, TxOut(5000, '51'), flag)
        assert preimage.hash_prevouts == bytes(32)
        assert preimage.hash_sequence == bytes(32)

    def test_single(self):
        tx = _two_in_two_out()
        flag = SIGHASHES['single'] | SIGHASHES['forkid']
        preimage = sighash.Preimage.from_tx(tx, 1, TxOut(5000, '51'), flag)
        assert preimage.hash_outputs == sighash.d_sha256(tx.outputs[1].serialize())
        assert preimage.hash_sequence == bytes(32)

        tx.outputs.pop()
        assert sighash.Preimage.from_tx(tx, 1, TxOut(5000, '51'), flag).hash_outputs == bytes(32)

    def test_none(self):
        tx = _two_in_two_out()
        flag = SIGHASHES['none'] | SIGHASHES['forkid']
        assert sighash.Preimage.from_tx(tx, 0, TxOut(5000, '51'), flag).hash_outputs == bytes(32)


class TestLegacyPreimage:
    def test_all(self):
        tx = _two_in_two_out()
        script = Script('OP_1')
        raw = sighash.get_preimage(tx, 0, TxOut(5000, script), SIGHASHES['all'])

        expected = tx.copy()
        expected.inputs[0].script = script
        assert raw == expected.serialize() + b'\x01\x00\x00\x00'

    def test_single_without_output(self):
        tx = _two_in_two_out()
        tx.outputs.pop()
        with pytest.raises(exceptions.SighashSingleRequiresInputAndOutputWithSameIndexes):
            sighash.get_preimage(tx, 1, TxOut(5000, '51'), SIGHASHES['single'])

    def test_single(self):
        tx = _two_in_two_out()
        legacy = Tx.deserialize(sighash.get_preimage(tx, 1, TxOut(5000, '51'), SIGHASHES['single'])[:-4])
        assert legacy.outputs[0].satoshis == -1
        assert legacy.outputs[1] == tx.outputs[1]
        assert legacy.inputs[0].sequence == 0
        assert legacy.inputs[1].sequence == 0xfffffffe


class TestSign:
    def test_signature(self, sig_vector: sigobj, private: PrivateKey):
        signature = sighash.sign(sig_vector.tx, 0, private, sig_vector.txout, sig_vector.sighash)
        assert signature.hex() == SIGNATURE_HEX
        assert base64.b64encode(signature).decode() == sig_vector.signature

    def test_verify(self, sig_vector: sigobj, private: PrivateKey):
        signature = bytes.fromhex(SIGNATURE_HEX)
        assert sighash.verify(signature, sig_vector.tx, 0, private.public, sig_vector.txout)
        assert sighash.verify(signature, sig_vector.tx, 0, private.public.to_bytes(), sig_vector.txout)

    def test_verify_tampered(self, sig_vector: sigobj, private: PrivateKey):
        signature = bytes.fromhex(SIGNATURE_HEX)
        tx = sig_vector.tx.copy()
        tx.outputs.append(TxOut(1, '51'))
        assert not sighash.verify(signature, tx, 0, private.public, sig_vector.txout)

        # sighash byte is a part of the signed data
        assert not sighash.verify(signature[:-1] + b'\xc1', sig_vector.tx, 0, private.public, sig_vector.txout)

    def test_verify_another_key(self, sig_vector: sigobj):
        signature = bytes.fromhex(SIGNATURE_HEX)
        assert not sighash.verify(signature, sig_vector.tx, 0, PrivateKey().public, sig_vector.txout)

    @pytest.mark.parametrize('signature, public', [
        (b'', None),
        (b'\x30\x02\x00\x41', None),
        (bytes.fromhex(SIGNATURE_HEX), b'\x02' + bytes(3))
    ])
    def test_verify_malformed(self, sig_vector: sigobj, private: PrivateKey, signature, public):
        public = private.public if public is None else public
        assert not sighash.verify(signature, sig_vector.tx, 0, public, sig_vector.txout)

    def test_explicit_k(self, sig_vector: sigobj, private: PrivateKey):
        first = sighash.sign(sig_vector.tx, 0, private, sig_vector.txout, k=12345)
        second = sighash.sign(sig_vector.tx, 0, private, sig_vector.txout, k=12345)
        assert first == second != sighash.sign(sig_vector.tx, 0, private, sig_vector.txout)
        assert sighash.verify(first, sig_vector.tx, 0, private.public, sig_vector.txout)
