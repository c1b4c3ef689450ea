import json
import hashlib
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Literal, Optional, Self, \
                   overload, Protocol, runtime_checkable, Mapping

from bsvlib import exceptions
from bsvlib.const import SEPARATORS, SEPARATORS_REVERSED


byteorder_T = Literal['little', 'big']


@runtime_checkable
class SupportsDump(Protocol):
    @abstractmethod
    def as_dict(self) -> dict:
        ...

    @abstractmethod
    def as_json(self, value: Mapping[Any, Any] | list, indent: Optional[int] = None, **kwargs) -> str:
        return json.dumps(value, indent=indent, **kwargs)


@runtime_checkable
class SupportsSerialize(Protocol):
    @abstractmethod
    def serialize(self) -> bytes:
        ...


@runtime_checkable
class SupportsCopy(Protocol):
    @abstractmethod
    def copy(self) -> Self:
        ...


class TypeConverter[expected_T, converted_T]:  # Descriptor
    """
    A descriptor that converts the type that is assigned to an attribute to the set type
    Example: "var = <value>" to "var = __class(<value>)" or "var = __converter(<value>)"

    Usage:
        x: TypeConverter[Iterable[int], int] = TypeConverter(int, sum)
    """
    @overload
    def __init__(self,
                 __class: type[converted_T],
                 __converter: Optional[Callable[[Any], Optional[converted_T]]] = None,
                 *,
                 optional: Literal[True]) -> None: ...

    @overload
    def __init__(self,
                 __class: type[converted_T],
                 __converter: Optional[Callable[[Any], converted_T]] = None,
                 *,
                 optional: Literal[False] = False) -> None: ...

    def __init__(self,
                 __class: type[converted_T],
                 __converter: Optional[Callable[[Any], Optional[converted_T] | converted_T]] = None,
                 *,
                 optional: bool = False) -> None:
        """
        :param __class: The type of the object should be
        :param __converter: Called to convert received object to type in __class
        :param optional: Can the attribute be optional (equal to None)
        """
        self.cls = __class
        self.converter = __converter
        self.optional = optional

    def __set_name__(self, owner: Any, name: Any) -> None:
        self.name = name

    @overload
    def __get__(self, instance: None, owner: None) -> 'TypeConverter': ...

    @overload
    def __get__(self, instance: Any, owner: Any) -> converted_T: ...

    def __get__(self, instance: Optional[Any], owner: Optional[Any]) -> 'TypeConverter' | converted_T:
        return self if instance is None else instance.__dict__[self.name]

    def __set__(self, instance: Any, value: expected_T | converted_T) -> None:
        if isinstance(value, self.cls) or value is None and self.optional:
            v: Optional[converted_T] = value
        elif self.converter:
            v = self.converter(value)
            assert v is not None or self.optional, 'converter can\'t return None if optional=False'
        else:
            v = self.cls(value)  # type: ignore

        instance.__dict__[self.name] = v


def take(data: bytes, size: int) -> tuple[bytes, bytes]:
    """Split fixed size field from the beginning of data, raise TruncatedInput if it's shorter"""
    if len(data) < size:
        raise exceptions.TruncatedInput(size, len(data))
    return data[:size], data[size:]


class _int(int, ABC):
    size: int = NotImplemented  # byte size
    _signed: bool = NotImplemented

    __integer_overflow_error = lambda _, i, s: OverflowError(f'received int ({i}) is greater than the max size ({s} bytes)')

    def __init__(self, *args, **kwargs) -> None:
        try:
            super().to_bytes(self.size, 'big', signed=self._signed)
        except OverflowError:
            raise self.__integer_overflow_error(self, self.size) from None

    @classmethod
    def unpack(cls, value: bytes, byteorder: byteorder_T = 'little') -> Self:
        if len(value) > cls.size:
            raise cls.__integer_overflow_error(cls, value, cls.size)

        return cls(int.from_bytes(value, byteorder, signed=cls._signed))

    @classmethod
    def pop(cls, data: bytes, byteorder: byteorder_T = 'little') -> tuple[Self, bytes]:
        """Unpack from the beginning of data, return (int, rest)"""
        value, rest = take(data, cls.size)
        return cls.unpack(value, byteorder), rest

    def pack(self, byteorder: byteorder_T = 'little') -> bytes:
        return super().to_bytes(self.size, byteorder, signed=self._signed)


class _sint(_int):
    _signed = True


class sint32(_sint):
    size = 4


class sint64(_sint):
    size = 8


class _uint(_int):
    _signed = False

    def __init__(self, *args, **kwargs) -> None:
        assert self >= 0, f'unsigned int received signed int (for {self} use sint)'
        super().__init__(self)


class uint32(_uint):
    size = 4


class uint64(_uint):
    size = 8


class varint(int):
    """
    Compact size unsigned int. With increased separator (default) it's the transaction
    varint (fd/fe/ff + 2/4/8 bytes), otherwise it's the script push length
    (direct <= 75, 4c/4d/4e + 1/2/4 bytes).
    """

    def __init__(self, *args, **kwargs) -> None:
        assert self >= 0, f'varint only supports unsigned int, but {self} received'

    @classmethod
    def unpack(cls, raw_data: bytes, byteorder: byteorder_T = 'little', *,
               increased_separator: bool = True) -> tuple['varint', bytes]:
        """
        Receives full data, decoding beginning int, return tuple[int, other_data[int_size:]].
        Most commonly used to get the size of the following data.

        Example raw_data:

                             fdc003/4dc003          fc2ed1a0fc2ed1a0fc2ed1a0fc2ed1a0 * 60
                   <varint/pushdata data size int>               <data>

         return   ->    (int(fdc003/4dc003)    ,    fc2ed1a0fc2ed1a0fc2ed1a0fc2ed1a0 * 60
                   <varint/pushdata data size int>          <raw_data[size:]>

        """
        first_byte, raw_data = take(raw_data, 1)
        separators = SEPARATORS['increased' if increased_separator else 'default']

        if first_byte not in separators:
            return cls(first_byte[0]), raw_data

        int_b, raw_data = take(raw_data, separators[first_byte])
        return cls(bytes2int(int_b, byteorder)), raw_data

    def pack(self, byteorder: byteorder_T = 'little', *, increased_separator: bool = True) -> bytes:
        if self < (253 if increased_separator else 76):
            return bytes([self])

        int_size = len(int2bytes(self, byteorder))

        if int_size > (8 if increased_separator else 4):
            raise ValueError(f'int too large for pack ({self}, increased_separator={increased_separator})')

        separator = b''
        for new_size, sep in SEPARATORS_REVERSED['increased' if increased_separator else 'default'].items():
            if int_size <= new_size:
                int_size, separator = new_size, sep
                break

        return separator + self.to_bytes(int_size, byteorder)


class varbin(bytes):
    """Bytes prefixed with varint length"""

    @classmethod
    def unpack(cls, raw_data: bytes) -> tuple['varbin', bytes]:
        size, raw_data = varint.unpack(raw_data)
        data, raw_data = take(raw_data, size)
        return cls(data), raw_data

    def pack(self) -> bytes:
        return varint(len(self)).pack() + self


class scriptnum(int):
    """
    Script number: little endian magnitude, the sign is the high bit of the last byte.
    Zero is an empty string, packing is always minimal, unpacking accepts non-minimal values.

        >>> scriptnum(-12345).pack().hex()
        '39b0'
    """

    @classmethod
    def unpack(cls, value: bytes, *, max_length: Optional[int] = None) -> 'scriptnum':
        if max_length is not None and len(value) > max_length:
            raise exceptions.NumericOverflow(value.hex(), max_length)

        if not value:
            return cls(0)

        v = int.from_bytes(value, 'little')
        if value[-1] & 0x80:
            return cls(-(v & ~(0x80 << 8 * (len(value) - 1))))
        return cls(v)

    def pack(self) -> bytes:
        if self == 0:
            return b''

        magnitude = abs(self)
        b = bytearray(magnitude.to_bytes((magnitude.bit_length() + 7) // 8, 'little'))

        if b[-1] & 0x80:  # sign bit is busy, add extra byte
            b.append(0x80 if self < 0 else 0x00)
        elif self < 0:
            b[-1] |= 0x80

        return bytes(b)


def minimal_encoding(value: bytes) -> bytes:
    """Re-encode script number bytes in their minimal form"""
    return scriptnum.unpack(value).pack()


def r160(d: bytes) -> bytes:
    h = hashlib.new('ripemd160')
    h.update(d)
    return h.digest()


def sha1(d: bytes) -> bytes:
    return hashlib.sha1(d).digest()


def sha256(d: bytes) -> bytes:
    return hashlib.sha256(d).digest()


def d_sha256(d: bytes) -> bytes:  # double sha256
    return sha256(sha256(d))


def op_hash160(d: bytes) -> bytes:
    return r160(sha256(d))


def get_magic_hash(message: str | bytes) -> bytes:
    """Bitcoin Signed Message digest"""
    message_b = message.encode('utf8') if isinstance(message, str) else message
    return d_sha256(varbin(b'Bitcoin Signed Message:\n').pack() + varbin(message_b).pack())


def int2bytes(v: int, byteorder: byteorder_T = 'big', *, signed: bool = False) -> bytes:
    """
    Convert int to bytes representation with minimum possible byte size
    :param v: value
    :param byteorder: byteorder
    :param signed: if signed int
    """
    if byteorder not in ('little', 'big'):
        raise exceptions.InvalidByteorder(byteorder)

    if signed:
        blength = (-v - 1 if v < 0 else v).bit_length() + 1  # +1 sign bit
    else:
        blength = v.bit_length() or 1  # 1 if v is zero
    return v.to_bytes((blength + 7) // 8, byteorder, signed=signed)


def bytes2int(value: bytes, byteorder: byteorder_T = 'big', *, signed: bool = False) -> int:
    return int.from_bytes(value, byteorder, signed=signed)


def ensure_bytes(value: bytes | str) -> bytes:
    """Hex string or bytes to bytes"""
    return bytes.fromhex(value) if isinstance(value, str) else bytes(value)


def pprint_class(class_or_instance: type | Any,
                 args: Iterable = (),
                 kwargs: dict[Any, Any] = {},
                 classmethod: Optional[str] = None) -> str:
    cls = class_or_instance if isinstance(class_or_instance, type) else type(class_or_instance)
    name = cls.__qualname__
    pv = lambda v: repr(v) if not isinstance(v, str) or v == '' else v
    akw = ', '.join([
        *(f'{pv(v)}' for v in args),
        *(f'{k}={pv(v)}' for k, v in kwargs.items())
    ])

    return f'{name}{f'.{classmethod}' if classmethod else ''}({akw})'
