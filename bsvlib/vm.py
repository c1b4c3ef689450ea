import logging
import operator
from functools import partial
from dataclasses import dataclass
from typing import Any, Callable, Optional

from bsvlib import exceptions, sighash
from bsvlib.script import Script, opcode, inner_T
from bsvlib.transaction import Tx, TxOut
from bsvlib.utils import scriptnum, minimal_encoding, r160, sha1, sha256, d_sha256, op_hash160, pprint_class
from bsvlib.const import MAX_SCRIPT_NUM_LENGTH_BEFORE_GENESIS, MAX_SCRIPT_ELEMENT_SIZE


logger = logging.getLogger(__name__)

TRUE = b'\x01'
FALSE = b''


def cast_to_bool(item: bytes) -> bool:
    """Any non-zero byte is true, except the sign bit of the last byte (negative zero)"""
    for n, b in enumerate(item):
        if b:
            return not (n == len(item) - 1 and b == 0x80)
    return False


def num2bin(value: int, size: int) -> bytes:
    """Script number padded to size bytes, sign bit is moved to the last byte"""
    b = bytearray(scriptnum(abs(value)).pack())
    if len(b) > size:
        raise exceptions.InvalidNumberRange('OP_NUM2BIN', size)

    b.extend(bytes(size - len(b)))
    if value < 0:
        b[-1] |= 0x80
    return bytes(b)


def bitcoin_div(a: int, b: int) -> int:
    # rounded towards zero
    result = abs(a) // abs(b)
    return -result if (a >= 0) ^ (b >= 0) else result


def bitcoin_mod(a: int, b: int) -> int:
    # abs(a) % abs(b) with the sign of a
    result = abs(a) % abs(b)
    return result if a >= 0 else -result


def shift_left(value: bytes, count: int) -> bytes:
    n_bytes, n_bits = divmod(count, 8)
    n_bytes = min(n_bytes, len(value))

    def pairs():
        for n in range(n_bytes, len(value) - 1):
            yield value[n], value[n + 1]
        if n_bytes < len(value):
            yield value[-1], 0
        for _ in range(n_bytes):
            yield 0, 0

    return bytes(((lhs << n_bits) & 255) + (rhs >> (8 - n_bits)) for lhs, rhs in pairs())


def shift_right(value: bytes, count: int) -> bytes:
    n_bytes, n_bits = divmod(count, 8)
    n_bytes = min(n_bytes, len(value))

    def pairs():
        for _ in range(n_bytes):
            yield 0, 0
        if n_bytes < len(value):
            yield 0, value[0]
        for n in range(len(value) - 1 - n_bytes):
            yield value[n], value[n + 1]

    return bytes(((lhs << (8 - n_bits)) & 255) + (rhs >> n_bits) for lhs, rhs in pairs())


@dataclass
class TxContext:
    """Input being validated: spending tx, input index and the output it spends"""
    tx: Tx
    vin: int
    txout: TxOut

    def check_sig(self, sig: bytes, pubkey: bytes) -> bool:
        try:
            return sighash.verify(sig, self.tx, self.vin, pubkey, self.txout)
        except exceptions.SighashError as e:
            logger.debug('signature hash can\'t be computed: %s', e)
            return False


@dataclass
class Condition:
    """Open OP_IF/OP_NOTIF block"""
    opcode: opcode
    execute: bool
    seen_else: bool = False


class VM:
    """
    Script interpreter. Stack items are bytes, the top of the stack is the end of the list.

    evaluate() never raises script errors: execution stops at the first failing chunk,
    the error is kept in VM.error and the state (stack, alt_stack, cursor) stays as it
    was at that point.

        >>> vm = VM()
        >>> vm.evaluate(Script(b'foo', b'bar', b'baz', 'OP_CAT', 'OP_CAT'))
        True
        >>> vm.stack
        [b'foobarbaz']
    """
    _handlers: list[Callable[..., None]]

    def __init__(self, context: Optional[TxContext] = None, *,
                 max_num_length: int = MAX_SCRIPT_NUM_LENGTH_BEFORE_GENESIS,
                 max_element_size: int = MAX_SCRIPT_ELEMENT_SIZE) -> None:
        """
        :param context: Transaction context, required by the signature opcodes.
        :param max_num_length: Max byte length of the numeric operands and results.
        :param max_element_size: Max byte length of a stack item.
        """
        self.context = context
        self.max_num_length = max_num_length
        self.max_element_size = max_element_size
        self.stack: list[bytes] = []
        self.alt_stack: list[bytes] = []
        self.conditions: list[Condition] = []
        self.chunks: list[inner_T] = []
        self.cursor = 0
        self.execute = True
        self.op: Optional[opcode] = None
        self.error: Optional[exceptions.ScriptError] = None

    def __repr__(self) -> str:
        return pprint_class(self, kwargs={
            'stack': [i.hex() for i in self.stack],
            'alt_stack': [i.hex() for i in self.alt_stack],
            'cursor': self.cursor,
            'error': self.error
        })

    @property
    def failed(self) -> bool:
        return self.error is not None

    def is_valid(self) -> bool:
        """Finished without error and the top of the stack is true"""
        return not self.failed and bool(self.stack) and cast_to_bool(self.stack[-1])

    def evaluate(self, script: Script) -> bool:
        """
        Run the script on the current stacks. A failed VM stays failed, the next
        evaluate() calls return False without running anything.
        :return: True if the execution finished without error
        """
        if self.failed:
            return False

        self.chunks = list(script)
        self.cursor = 0
        self.conditions = []

        try:
            while self.cursor < len(self.chunks):
                self.step()

            if self.conditions:
                raise exceptions.UnbalancedConditional(f'unterminated {self.conditions[-1].opcode.name}')

        except exceptions.ScriptError as e:
            self.error = e
            logger.debug('script failed at chunk %d (%s): %s', self.cursor - 1,
                         self.op.name if self.op is not None else 'push', e)

        return self.error is None

    def step(self) -> None:
        item = self.chunks[self.cursor]
        self.cursor += 1
        self.execute = all(c.execute for c in self.conditions)

        if not isinstance(item, opcode):
            self.op = None
            if self.execute:
                self.require_item_size(len(item))
                self.stack.append(item)
            return

        self.op = item
        if self.execute or opcode.OP_IF <= item <= opcode.OP_ENDIF:
            self._handlers[item](self)

    #
    # Helpers
    #
    def require_stack_depth(self, depth: int) -> None:
        if len(self.stack) < depth:
            raise exceptions.StackUnderflow(self._opname, depth, len(self.stack))

    def require_item_size(self, size: int) -> None:
        if size > self.max_element_size:
            raise exceptions.InvalidPushSize(self._opname, size, self.max_element_size)

    @property
    def _opname(self) -> str:
        return self.op.name if self.op is not None else 'push'

    def to_number(self, item: bytes) -> scriptnum:
        return scriptnum.unpack(item, max_length=self.max_num_length)

    def pop_number(self) -> int:
        self.require_stack_depth(1)
        n = self.to_number(self.stack[-1])
        self.stack.pop()
        return int(n)

    def push_number(self, value: int) -> None:
        b = scriptnum(value).pack()
        if len(b) > self.max_num_length:
            raise exceptions.NumericOverflow(b.hex(), self.max_num_length)
        self.stack.append(b)

    def push_bool(self, value: bool) -> None:
        self.stack.append(TRUE if value else FALSE)

    def verify_top(self) -> None:
        if not cast_to_bool(self.stack[-1]):
            raise exceptions.VerifyFailed(self._opname)
        self.stack.pop()

    #
    # Constants
    #
    def on_small_int(self, value: int) -> None:
        self.stack.append(scriptnum(value).pack())

    #
    # Control
    #
    def on_NOP(self) -> None:
        pass

    def on_IF(self, op: opcode) -> None:
        execute = False
        if self.execute:
            self.require_stack_depth(1)
            execute = cast_to_bool(self.stack.pop())
            if op == opcode.OP_NOTIF:
                execute = not execute
        self.conditions.append(Condition(op, execute))

    def on_ELSE(self) -> None:
        top = self.conditions[-1] if self.conditions else None
        if top is None or top.seen_else:
            raise exceptions.UnbalancedConditional('unexpected OP_ELSE')
        top.execute = not top.execute
        top.seen_else = True

    def on_ENDIF(self) -> None:
        if not self.conditions:
            raise exceptions.UnbalancedConditional('unexpected OP_ENDIF')
        self.conditions.pop()

    def on_VERIF(self, op: opcode) -> None:
        # fails in unexecuted branches too
        self.on_invalid_opcode(op)

    def on_VERIFY(self) -> None:
        self.require_stack_depth(1)
        self.verify_top()

    def on_RETURN(self) -> None:
        raise exceptions.OpReturnError

    def on_invalid_opcode(self, op: int) -> None:
        raise exceptions.InvalidOpcode(opcode(op).name)

    def on_disabled_opcode(self, op: opcode) -> None:
        raise exceptions.DisabledOpcode(op.name)

    #
    # Stack operations
    #
    def on_TOALTSTACK(self) -> None:
        self.require_stack_depth(1)
        self.alt_stack.append(self.stack.pop())

    def on_FROMALTSTACK(self) -> None:
        if not self.alt_stack:
            raise exceptions.AltStackUnderflow(self._opname)
        self.stack.append(self.alt_stack.pop())

    def on_DROP(self) -> None:
        # (x -- )
        self.require_stack_depth(1)
        self.stack.pop()

    def on_2DROP(self) -> None:
        # (x1 x2 -- )
        self.require_stack_depth(2)
        del self.stack[-2:]

    def on_nDUP(self, n: int) -> None:
        # (x -- x x) or (x1 x2 -- x1 x2 x1 x2) or (x1 x2 x3 -- x1 x2 x3 x1 x2 x3)
        self.require_stack_depth(n)
        self.stack.extend(self.stack[-n:])

    def on_OVER(self) -> None:
        # (x1 x2 -- x1 x2 x1)
        self.require_stack_depth(2)
        self.stack.append(self.stack[-2])

    def on_2OVER(self) -> None:
        # (x1 x2 x3 x4 -- x1 x2 x3 x4 x1 x2)
        self.require_stack_depth(4)
        self.stack.extend(self.stack[-4:-2])

    def on_ROT(self) -> None:
        # (x1 x2 x3 -- x2 x3 x1)
        self.require_stack_depth(3)
        self.stack.append(self.stack.pop(-3))

    def on_2ROT(self) -> None:
        # (x1 x2 x3 x4 x5 x6 -- x3 x4 x5 x6 x1 x2)
        self.require_stack_depth(6)
        self.stack.extend([self.stack.pop(-6), self.stack.pop(-5)])

    def on_SWAP(self) -> None:
        # (x1 x2 -- x2 x1)
        self.require_stack_depth(2)
        self.stack.append(self.stack.pop(-2))

    def on_2SWAP(self) -> None:
        # (x1 x2 x3 x4 -- x3 x4 x1 x2)
        self.require_stack_depth(4)
        self.stack.extend([self.stack.pop(-4), self.stack.pop(-3)])

    def on_IFDUP(self) -> None:
        # (x -- 0 | x x)
        self.require_stack_depth(1)
        if cast_to_bool(self.stack[-1]):
            self.stack.append(self.stack[-1])

    def on_DEPTH(self) -> None:
        # ( -- stacksize)
        self.stack.append(scriptnum(len(self.stack)).pack())

    def on_NIP(self) -> None:
        # (x1 x2 -- x2)
        self.require_stack_depth(2)
        self.stack.pop(-2)

    def on_TUCK(self) -> None:
        # (x1 x2 -- x2 x1 x2)
        self.require_stack_depth(2)
        self.stack.insert(-2, self.stack[-1])

    def on_PICK_ROLL(self, op: opcode) -> None:
        # pick: (xn ... x2 x1 x0 n -- xn ... x2 x1 x0 xn)
        # roll: (xn ... x2 x1 x0 n -- ... x2 x1 x0 xn)
        self.require_stack_depth(2)
        n = self.pop_number()
        if not 0 <= n < len(self.stack):
            raise exceptions.InvalidStackOperation(op.name, n)
        if op == opcode.OP_PICK:
            self.stack.append(self.stack[-(n + 1)])
        else:
            self.stack.append(self.stack.pop(-(n + 1)))

    #
    # Splice
    #
    def on_CAT(self) -> None:
        # (x1 x2 -- x1x2)
        self.require_stack_depth(2)
        self.require_item_size(len(self.stack[-2]) + len(self.stack[-1]))
        x2 = self.stack.pop()
        self.stack[-1] += x2

    def on_SPLIT(self) -> None:
        # (x n -- x1 x2)
        self.require_stack_depth(2)
        x = self.stack[-2]
        n = int(self.to_number(self.stack[-1]))
        if not 0 <= n <= len(x):
            raise exceptions.InvalidSplitRange(n, len(x))
        self.stack[-2:] = [x[:n], x[n:]]

    def on_NUM2BIN(self) -> None:
        # (in size -- out)
        self.require_stack_depth(2)
        size = int(self.to_number(self.stack[-1]))
        if size < 0:
            raise exceptions.InvalidNumberRange('OP_NUM2BIN', size)
        self.require_item_size(size)
        value = scriptnum.unpack(self.stack[-2])
        self.stack[-2:] = [num2bin(value, size)]

    def on_BIN2NUM(self) -> None:
        # (in -- out)
        self.require_stack_depth(1)
        self.stack[-1] = minimal_encoding(self.stack[-1])

    def on_SIZE(self) -> None:
        # (x -- x size(x))
        self.require_stack_depth(1)
        self.stack.append(scriptnum(len(self.stack[-1])).pack())

    #
    # Bitwise logic
    #
    def on_INVERT(self) -> None:
        # (x -- out)
        self.require_stack_depth(1)
        self.stack[-1] = bytes(x ^ 255 for x in self.stack[-1])

    def on_binary_bitop(self, binop: Callable[[int, int], int]) -> None:
        # (x1 x2 -- out)
        self.require_stack_depth(2)
        x1, x2 = self.stack[-2], self.stack[-1]
        if len(x1) != len(x2):
            raise exceptions.InvalidOperandSize(self._opname, len(x1), len(x2))
        self.stack[-2:] = [bytes(binop(b1, b2) for b1, b2 in zip(x1, x2))]

    def on_EQUAL(self) -> None:
        # (x1 x2 -- bool)
        self.require_stack_depth(2)
        self.push_bool(self.stack.pop() == self.stack.pop())

    def on_EQUALVERIFY(self) -> None:
        # (x1 x2 -- )
        self.on_EQUAL()
        self.verify_top()

    def on_shift(self, shift: Callable[[bytes, int], bytes]) -> None:
        # (x n -- out), logical shift keeping the item size
        self.require_stack_depth(2)
        n = int(self.to_number(self.stack[-1]))
        if n < 0:
            raise exceptions.InvalidNumberRange(self._opname, n)
        self.stack[-2:] = [shift(self.stack[-2], n)]

    #
    # Numeric
    #
    def on_unary_numeric(self, unary_op: Callable[[int], Any]) -> None:
        # (x -- out)
        self.require_stack_depth(1)
        value = self.to_number(self.stack[-1])
        self.stack.pop()
        self.push_number(int(unary_op(value)))

    def on_binary_numeric(self, binary_op: Callable[[int, int], Any]) -> None:
        # (x1 x2 -- out)
        self.require_stack_depth(2)
        x1 = self.to_number(self.stack[-2])
        x2 = self.to_number(self.stack[-1])
        try:
            result = binary_op(x1, x2)
        except ZeroDivisionError:
            raise exceptions.DivisionByZero('division' if binary_op is bitcoin_div else 'modulo') from None
        del self.stack[-2:]
        self.push_number(int(result))

    def on_NUMEQUALVERIFY(self) -> None:
        # (x1 x2 -- )
        self.on_binary_numeric(operator.eq)
        self.verify_top()

    def on_WITHIN(self) -> None:
        # (x min max -- out), min <= x < max
        self.require_stack_depth(3)
        x, mn, mx = (self.to_number(i) for i in self.stack[-3:])
        del self.stack[-3:]
        self.push_bool(mn <= x < mx)

    #
    # Crypto
    #
    def on_hash(self, hash_func: Callable[[bytes], bytes]) -> None:
        # (x -- hash)
        self.require_stack_depth(1)
        self.stack.append(hash_func(self.stack.pop()))

    def _context(self) -> TxContext:
        if self.context is None:
            raise exceptions.MissingTxContext(self._opname)
        return self.context

    def on_CHECKSIG(self) -> None:
        # (sig pubkey -- bool)
        context = self._context()
        self.require_stack_depth(2)
        pubkey = self.stack.pop()
        sig = self.stack.pop()
        self.push_bool(context.check_sig(sig, pubkey))

    def on_CHECKSIGVERIFY(self) -> None:
        # (sig pubkey -- )
        self.on_CHECKSIG()
        self.verify_top()

    def on_CHECKMULTISIG(self) -> None:
        # (dummy [sig ...] sig_count [pubkey ...] pubkey_count -- bool)
        context = self._context()

        self.require_stack_depth(1)
        key_count = int(self.to_number(self.stack[-1]))
        if key_count < 0:
            raise exceptions.InvalidPubKeyCount(key_count)

        self.require_stack_depth(key_count + 2)
        sig_count = int(self.to_number(self.stack[-(key_count + 2)]))
        if not 0 <= sig_count <= key_count:
            raise exceptions.InvalidSigCount(sig_count, key_count)

        item_count = key_count + sig_count + 2
        self.require_stack_depth(item_count)

        keys_remaining = key_count
        sigs_remaining = sig_count
        key_base_index = -(key_count + 2)
        sig_base_index = key_base_index - (sig_count + 1)
        # keys and signatures must be in the same order
        while keys_remaining >= sigs_remaining > 0:
            sig = self.stack[sig_base_index + sigs_remaining]
            pubkey = self.stack[key_base_index + keys_remaining]
            if context.check_sig(sig, pubkey):
                sigs_remaining -= 1
            keys_remaining -= 1

        is_good = keys_remaining >= sigs_remaining
        del self.stack[-item_count:]

        # historical bug, one more item is consumed
        self.require_stack_depth(1)
        self.stack[-1] = TRUE if is_good else FALSE

    def on_CHECKMULTISIGVERIFY(self) -> None:
        # (dummy [sig ...] sig_count [pubkey ...] pubkey_count -- )
        self.on_CHECKMULTISIG()
        self.verify_top()

    @classmethod
    def bind_handlers(cls) -> None:
        handlers: list[Callable[..., None]] = [partial(cls.on_invalid_opcode, op=op) for op in range(256)]

        #
        # Constants
        #
        handlers[opcode.OP_0] = partial(cls.on_small_int, value=0)
        handlers[opcode.OP_1NEGATE] = partial(cls.on_small_int, value=-1)
        for n in range(1, 17):
            handlers[opcode.OP_1 + n - 1] = partial(cls.on_small_int, value=n)

        #
        # Control
        #
        handlers[opcode.OP_NOP] = cls.on_NOP
        handlers[opcode.OP_IF] = partial(cls.on_IF, op=opcode.OP_IF)
        handlers[opcode.OP_NOTIF] = partial(cls.on_IF, op=opcode.OP_NOTIF)
        handlers[opcode.OP_VERIF] = partial(cls.on_VERIF, op=opcode.OP_VERIF)
        handlers[opcode.OP_VERNOTIF] = partial(cls.on_VERIF, op=opcode.OP_VERNOTIF)
        handlers[opcode.OP_ELSE] = cls.on_ELSE
        handlers[opcode.OP_ENDIF] = cls.on_ENDIF
        handlers[opcode.OP_VERIFY] = cls.on_VERIFY
        handlers[opcode.OP_RETURN] = cls.on_RETURN

        #
        # Stack operations
        #
        handlers[opcode.OP_TOALTSTACK] = cls.on_TOALTSTACK
        handlers[opcode.OP_FROMALTSTACK] = cls.on_FROMALTSTACK
        handlers[opcode.OP_DROP] = cls.on_DROP
        handlers[opcode.OP_2DROP] = cls.on_2DROP
        handlers[opcode.OP_DUP] = partial(cls.on_nDUP, n=1)
        handlers[opcode.OP_2DUP] = partial(cls.on_nDUP, n=2)
        handlers[opcode.OP_3DUP] = partial(cls.on_nDUP, n=3)
        handlers[opcode.OP_OVER] = cls.on_OVER
        handlers[opcode.OP_2OVER] = cls.on_2OVER
        handlers[opcode.OP_ROT] = cls.on_ROT
        handlers[opcode.OP_2ROT] = cls.on_2ROT
        handlers[opcode.OP_SWAP] = cls.on_SWAP
        handlers[opcode.OP_2SWAP] = cls.on_2SWAP
        handlers[opcode.OP_IFDUP] = cls.on_IFDUP
        handlers[opcode.OP_DEPTH] = cls.on_DEPTH
        handlers[opcode.OP_NIP] = cls.on_NIP
        handlers[opcode.OP_TUCK] = cls.on_TUCK
        handlers[opcode.OP_PICK] = partial(cls.on_PICK_ROLL, op=opcode.OP_PICK)
        handlers[opcode.OP_ROLL] = partial(cls.on_PICK_ROLL, op=opcode.OP_ROLL)

        #
        # Splice
        #
        handlers[opcode.OP_CAT] = cls.on_CAT
        handlers[opcode.OP_SPLIT] = cls.on_SPLIT
        handlers[opcode.OP_NUM2BIN] = cls.on_NUM2BIN
        handlers[opcode.OP_BIN2NUM] = cls.on_BIN2NUM
        handlers[opcode.OP_SIZE] = cls.on_SIZE

        #
        # Bitwise logic
        #
        handlers[opcode.OP_INVERT] = cls.on_INVERT
        handlers[opcode.OP_AND] = partial(cls.on_binary_bitop, binop=operator.and_)
        handlers[opcode.OP_OR] = partial(cls.on_binary_bitop, binop=operator.or_)
        handlers[opcode.OP_XOR] = partial(cls.on_binary_bitop, binop=operator.xor)
        handlers[opcode.OP_EQUAL] = cls.on_EQUAL
        handlers[opcode.OP_EQUALVERIFY] = cls.on_EQUALVERIFY
        handlers[opcode.OP_LSHIFT] = partial(cls.on_shift, shift=shift_left)
        handlers[opcode.OP_RSHIFT] = partial(cls.on_shift, shift=shift_right)

        #
        # Numeric
        #
        handlers[opcode.OP_1ADD] = partial(cls.on_unary_numeric, unary_op=lambda x: x + 1)
        handlers[opcode.OP_1SUB] = partial(cls.on_unary_numeric, unary_op=lambda x: x - 1)
        handlers[opcode.OP_2MUL] = partial(cls.on_disabled_opcode, op=opcode.OP_2MUL)
        handlers[opcode.OP_2DIV] = partial(cls.on_disabled_opcode, op=opcode.OP_2DIV)
        handlers[opcode.OP_NEGATE] = partial(cls.on_unary_numeric, unary_op=operator.neg)
        handlers[opcode.OP_ABS] = partial(cls.on_unary_numeric, unary_op=operator.abs)
        handlers[opcode.OP_NOT] = partial(cls.on_unary_numeric, unary_op=operator.not_)
        handlers[opcode.OP_0NOTEQUAL] = partial(cls.on_unary_numeric, unary_op=operator.truth)
        handlers[opcode.OP_ADD] = partial(cls.on_binary_numeric, binary_op=operator.add)
        handlers[opcode.OP_SUB] = partial(cls.on_binary_numeric, binary_op=operator.sub)
        handlers[opcode.OP_MUL] = partial(cls.on_binary_numeric, binary_op=operator.mul)
        handlers[opcode.OP_DIV] = partial(cls.on_binary_numeric, binary_op=bitcoin_div)
        handlers[opcode.OP_MOD] = partial(cls.on_binary_numeric, binary_op=bitcoin_mod)
        handlers[opcode.OP_BOOLAND] = partial(cls.on_binary_numeric, binary_op=lambda a, b: bool(a and b))
        handlers[opcode.OP_BOOLOR] = partial(cls.on_binary_numeric, binary_op=lambda a, b: bool(a or b))
        handlers[opcode.OP_NUMEQUAL] = partial(cls.on_binary_numeric, binary_op=operator.eq)
        handlers[opcode.OP_NUMEQUALVERIFY] = cls.on_NUMEQUALVERIFY
        handlers[opcode.OP_NUMNOTEQUAL] = partial(cls.on_binary_numeric, binary_op=operator.ne)
        handlers[opcode.OP_LESSTHAN] = partial(cls.on_binary_numeric, binary_op=operator.lt)
        handlers[opcode.OP_GREATERTHAN] = partial(cls.on_binary_numeric, binary_op=operator.gt)
        handlers[opcode.OP_LESSTHANOREQUAL] = partial(cls.on_binary_numeric, binary_op=operator.le)
        handlers[opcode.OP_GREATERTHANOREQUAL] = partial(cls.on_binary_numeric, binary_op=operator.ge)
        handlers[opcode.OP_MIN] = partial(cls.on_binary_numeric, binary_op=min)
        handlers[opcode.OP_MAX] = partial(cls.on_binary_numeric, binary_op=max)
        handlers[opcode.OP_WITHIN] = cls.on_WITHIN

        #
        # Crypto
        #
        handlers[opcode.OP_RIPEMD160] = partial(cls.on_hash, hash_func=r160)
        handlers[opcode.OP_SHA1] = partial(cls.on_hash, hash_func=sha1)
        handlers[opcode.OP_SHA256] = partial(cls.on_hash, hash_func=sha256)
        handlers[opcode.OP_HASH160] = partial(cls.on_hash, hash_func=op_hash160)
        handlers[opcode.OP_HASH256] = partial(cls.on_hash, hash_func=d_sha256)
        handlers[opcode.OP_CODESEPARATOR] = cls.on_NOP
        handlers[opcode.OP_CHECKSIG] = cls.on_CHECKSIG
        handlers[opcode.OP_CHECKSIGVERIFY] = cls.on_CHECKSIGVERIFY
        handlers[opcode.OP_CHECKMULTISIG] = cls.on_CHECKMULTISIG
        handlers[opcode.OP_CHECKMULTISIGVERIFY] = cls.on_CHECKMULTISIGVERIFY

        #
        # Expansion, locktime opcodes are NOPs after genesis
        #
        for op in range(opcode.OP_NOP1, opcode.OP_NOP10 + 1):
            handlers[op] = cls.on_NOP

        cls._handlers = handlers


VM.bind_handlers()
