"""
Script helpers for varint prefixed data on top of the stack (scripts in the preimage,
serialized transactions). The varint width is resolved at runtime by its first byte.
"""
from typing import Any, Callable

from bsvlib.script import Script, opcode
from bsvlib.contract.helpers import op_if, trim, decode_uint


def _varint_switch(script: Script, handler: Callable[[Script, int], Any]) -> Script:
    script.push(opcode.OP_1).push(opcode.OP_SPLIT).push(opcode.OP_SWAP)

    def branch(separator: bytes, size: int, otherwise: Callable[[Script], Any]) -> Callable[[Script], Any]:
        def check(s: Script) -> None:
            s.push(opcode.OP_DUP).push(separator).push(opcode.OP_EQUAL)
            op_if(s, lambda s: handler(s, size), otherwise)
        return check

    check = branch(b'\xfd', 2, branch(b'\xfe', 4, branch(b'\xff', 8, lambda s: handler(s, 1))))
    check(script)
    return script


def get_varint(script: Script) -> Script:
    """Put the varint number on top of the stack, keep the original item"""
    def handler(s: Script, size: int) -> None:
        if size == 1:
            s.push(opcode.OP_NIP)
        else:
            s.push(opcode.OP_DROP).push(size).push(opcode.OP_SPLIT).push(opcode.OP_DROP)
        decode_uint(s)

    return _varint_switch(script.push(opcode.OP_DUP), handler)


def read_varint(script: Script) -> Script:
    """Replace the top stack item with the rest of data (second) and varint prefixed data (top)"""
    def handler(s: Script, size: int) -> None:
        if size != 1:
            s.push(opcode.OP_DROP).push(size).push(opcode.OP_SPLIT).push(opcode.OP_SWAP)
        decode_uint(s)
        s.push(opcode.OP_SPLIT).push(opcode.OP_SWAP)

    return _varint_switch(script, handler)


def trim_varint(script: Script) -> Script:
    """Remove the varint prefix of the top stack item"""
    def handler(s: Script, size: int) -> None:
        s.push(opcode.OP_DROP)
        if size != 1:
            trim(s, size)

    return _varint_switch(script, handler)
