"""
Script building blocks. Every helper appends opcodes to the given script and returns it,
so they can be nested and chained:

    >>> decode_uint(slice(Script(data), 4, 8)).push(opcode.OP_1ADD)
"""
from typing import Any, Callable, Iterable, Optional

from bsvlib import exceptions
from bsvlib.script import Script, opcode
from bsvlib.utils import byteorder_T


handler_T = Callable[[Script], Any]


def _conditional(script: Script, op: opcode, handle_if: handler_T, handle_else: Optional[handler_T]) -> Script:
    script.push(op)
    handle_if(script)
    if handle_else is not None:
        script.push(opcode.OP_ELSE)
        handle_else(script)
    return script.push(opcode.OP_ENDIF)


def op_if(script: Script, handle_if: handler_T, handle_else: Optional[handler_T] = None) -> Script:
    """OP_IF <handle_if> [OP_ELSE <handle_else>] OP_ENDIF"""
    return _conditional(script, opcode.OP_IF, handle_if, handle_else)


def op_notif(script: Script, handle_if: handler_T, handle_else: Optional[handler_T] = None) -> Script:
    """OP_NOTIF <handle_if> [OP_ELSE <handle_else>] OP_ENDIF"""
    return _conditional(script, opcode.OP_NOTIF, handle_if, handle_else)


def each[T](script: Script, items: Iterable[T], handler: Callable[[Script, T], Any]) -> Script:
    for item in items:
        handler(script, item)
    return script


def repeat(script: Script, times: int, handler: Callable[[Script, int], Any]) -> Script:
    """Call handler(script, i) for i in range(times)"""
    return each(script, range(times), handler)


def reverse(script: Script, length: int) -> Script:
    """Reverse the top stack item, its length must be known"""
    for _ in range(length - 1):
        script.push(opcode.OP_1).push(opcode.OP_SPLIT)
    for _ in range(length - 1):
        script.push(opcode.OP_SWAP).push(opcode.OP_CAT)
    return script


def trim(script: Script, length: int) -> Script:
    """Remove length leading bytes (or trailing if it's negative) from the top stack item"""
    if length > 0:
        script.push(length).push(opcode.OP_SPLIT).push(opcode.OP_NIP)
    elif length < 0:
        script.push(opcode.OP_SIZE).push(-length).push(opcode.OP_SUB).push(opcode.OP_SPLIT).push(opcode.OP_DROP)
    return script


def slice(script: Script, start: int, length: int) -> Script:
    """
    Replace the top stack item with length bytes starting from start,
    negative start counts from the end
    """
    if start < 0:
        script.push(opcode.OP_SIZE).push(-start).push(opcode.OP_SUB).push(opcode.OP_SPLIT).push(opcode.OP_NIP)
        start = 0

    trim(script, start)
    return script.push(length).push(opcode.OP_SPLIT).push(opcode.OP_DROP)


def decode_uint(script: Script, byteorder: byteorder_T = 'little') -> Script:
    """Unsigned int bytes on top of the stack to script number"""
    match byteorder:
        case 'little':
            # zero byte keeps the sign bit clear
            return script.push(b'\x00').push(opcode.OP_CAT).push(opcode.OP_BIN2NUM)
        case 'big':
            raise exceptions.UnsupportedByteorder(byteorder, 'decode_uint')
        case _:
            raise exceptions.InvalidByteorder(byteorder)
