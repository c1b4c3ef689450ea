from bsvlib import address, transaction, script, utils, const, sighash, vm, contract, builder, block, merkle_proof
from bsvlib.script import opcode, Script
from bsvlib.const import NetworkType
from bsvlib.address import PrivateKey, PublicKey, Address
from bsvlib.transaction import OutPoint, TxIn, TxOut, UTXO, Tx
from bsvlib.vm import VM, TxContext
from bsvlib.contract import BaseContract, ContractType, P2PKH, P2PK, P2MS, P2RPH, OpReturn, Raw
from bsvlib.builder import TxBuilder
from bsvlib.block import Block, BlockHeader
from bsvlib.merkle_proof import MerkleProof


__version__ = '1.0.0'
