from bsvlib.contract import helpers, varint, push_tx
from bsvlib.contract.base import BaseContract, ContractType, simulate
from bsvlib.contract.templates import P2PKH, P2PK, P2MS, P2RPH, OpReturn, Raw, TEMPLATES, \
    get_template, generate_k, get_r
