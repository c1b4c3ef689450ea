from enum import Enum


class NetworkType(Enum):
    MAIN = 'mainnet'
    TEST = 'testnet'

    def toggle(self) -> 'NetworkType':
        return sorted([self.MAIN, self.TEST], key=lambda x: x == self)[0]


MAX_ORDER = 0xfffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141

DEFAULT_VERSION = 1
DEFAULT_LOCKTIME = 0
DEFAULT_SEQUENCE = 0xffffffff
DEFAULT_NETWORK = NetworkType.MAIN
EMPTY_SEQUENCE = 0
NEGATIVE_SATOSHI = -1
NULL_HASH = b'\x00' * 32
NULL_INDEX = 0xffffffff
HASH160_LENGTH = 20
SHA256_LENGTH = 32
COMPACT_SIGNATURE_LENGTH = 65

# merkle proof flags: subject is a full tx, target type bits
MERKLE_PROOF_TX_FLAG = 0x01
MERKLE_PROOF_TARGET_MASK = 0x06
MERKLE_PROOF_TARGET_HASH = 0x00
MERKLE_PROOF_TARGET_HEADER = 0x02
MERKLE_PROOF_TARGET_MERKLE_ROOT = 0x04

SIGHASHES = {
    'all': 0x01,
    'none': 0x02,
    'single': 0x03,
    'forkid': 0x40,
    'anyonecanpay': 0x80
}
DEFAULT_SIGHASH = SIGHASHES['all'] | SIGHASHES['forkid']

# placeholder sizes used while a transaction is not signed yet
SIGNATURE_PLACEHOLDER_LENGTH = 71
PREIMAGE_PLACEHOLDER_LENGTH = 181

# numeric operands/results length (bytes)
MAX_SCRIPT_NUM_LENGTH_BEFORE_GENESIS = 4
MAX_SCRIPT_NUM_LENGTH_AFTER_GENESIS = 750_000

# stack item length (bytes), pushes and results of OP_CAT/OP_NUM2BIN
MAX_SCRIPT_ELEMENT_SIZE = 100_000_000

# satoshis/byte
DEFAULT_FEE_RATES = {
    'mine': {
        'data': 0.5,
        'standard': 0.5
    },
    'relay': {
        'data': 0.25,
        'standard': 0.25
    }
}
DUST_INPUT_SIZE = 148
DUST_MULTIPLIER = 3

SIMULATION_SATOSHIS = 50_000

SEPARATORS = {
    'default': {
        b'\x4c': 1,
        b'\x4d': 2,
        b'\x4e': 4
    },
    'increased': {
        b'\xfd': 2,
        b'\xfe': 4,
        b'\xff': 8
    }
}
SEPARATORS_REVERSED = {
    'default': {
        1: b'\x4c',
        2: b'\x4d',
        4: b'\x4e'
    },
    'increased': {
        2: b'\xfd',
        4: b'\xfe',
        8: b'\xff'
    }
}

PREFIXES = {
    'wif': {
        NetworkType.MAIN: b'\x80',
        NetworkType.TEST: b'\xef'
    },
    'wif_reversed': {
        b'\x80': NetworkType.MAIN,
        b'\xef': NetworkType.TEST
    },
    'public_key': {
        'compressed': {
            'even': b'\x02',
            'odd': b'\x03'
        },
        'uncompressed': b'\x04'
    },
    'address': {
        NetworkType.MAIN: b'\x00',
        NetworkType.TEST: b'\x6f'
    },
    'address_reversed': {
        b'\x00': NetworkType.MAIN,
        b'\x6f': NetworkType.TEST
    }
}
