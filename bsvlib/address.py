import base64
import binascii
import hashlib
from typing import cast, Self, Optional
from ecdsa import SigningKey, SECP256k1, VerifyingKey
from ecdsa.keys import BadSignatureError
from ecdsa.errors import MalformedPointError
from ecdsa.ecdsa import InvalidPointError
from ecdsa.numbertheory import SquareRootError
from ecdsa.util import sigencode_der, sigdecode_der, sigencode_string, sigdecode_string
from base58check import b58encode, b58decode

from bsvlib import exceptions
from bsvlib.script import opcode, Script
from bsvlib.const import PREFIXES, DEFAULT_SIGHASH, HASH160_LENGTH, COMPACT_SIGNATURE_LENGTH, DEFAULT_NETWORK, \
                         NetworkType
from bsvlib.utils import d_sha256, op_hash160, get_magic_hash, pprint_class


def sigencode_der_low_s(r: int, s: int, order: int) -> bytes:
    """DER encode with s normalized to the lower half of the curve order"""
    if s > order // 2:
        s = order - s
    return sigencode_der(r, s, order)


def decode_compact_signature(signature: str) -> bytes:
    """Base64 message signature to 65 bytes: recovery header, r, s"""
    try:
        b = base64.b64decode(signature.encode('utf8'), validate=True)
    except binascii.Error:
        raise exceptions.InvalidSignature(signature, 'base64 decode failed') from None

    if len(b) != COMPACT_SIGNATURE_LENGTH:
        raise exceptions.InvalidSignature(signature, f'{COMPACT_SIGNATURE_LENGTH} bytes expected, {len(b)} received')
    return b


class PrivateKey:
    def __init__(self,
                 key: Optional[SigningKey] = None,
                 pubkey_network: NetworkType = DEFAULT_NETWORK,
                 *,
                 pubkey_compressed: bool = True):
        self.key = key if key else SigningKey.generate(SECP256k1)
        self.public = PublicKey(
            cast(VerifyingKey, self.key.get_verifying_key()),
            network=pubkey_network,
            compressed=pubkey_compressed
        )

    @classmethod
    def from_wif(cls, wif: str) -> Self:
        try:
            data = b58decode(wif.encode('utf8'))
        except ValueError:
            raise exceptions.InvalidWIF(wif, 'base58 decode failed') from None

        key, checksum = data[:-4], data[-4:]
        if d_sha256(key)[:4] != checksum:
            raise exceptions.InvalidWIF(wif, 'checksum not verified')

        p, key = key[:1], key[1:]
        if p not in PREFIXES['wif_reversed']:
            raise exceptions.InvalidWIF(wif, f'unsupported prefix 0x{p.hex()}')
        network = PREFIXES['wif_reversed'][p]

        if len(key) == 33:  # compressed
            if key[-1:] != b'\x01':
                raise exceptions.InvalidWIF(wif, f'incorrect compressed mark {hex(key[-1])}')
            compressed = True
            key = key[:-1]

        elif len(key) == 32:
            compressed = False

        else:
            raise exceptions.InvalidWIF(wif, f'incorrect private key length {len(key)}')

        return cls(SigningKey.from_string(key, SECP256k1), pubkey_network=network, pubkey_compressed=compressed)

    @classmethod
    def from_bytes(cls, b: bytes, pubkey_network: NetworkType = DEFAULT_NETWORK, pubkey_compressed: bool = True):
        return cls(SigningKey.from_string(b, SECP256k1), pubkey_network, pubkey_compressed=pubkey_compressed)

    def sign(self, digest: bytes, *, k: Optional[int] = None) -> bytes:
        """
        DER signature (low-S) of a 32 bytes digest.
        :param k: Explicit nonce, by default it's RFC 6979 deterministic
        """
        if k is None:
            return self.key.sign_digest_deterministic(digest, hashlib.sha256, sigencode_der_low_s)
        return self.key.sign_digest(digest, sigencode=sigencode_der_low_s, k=k)

    def sign_message(self, message: str | bytes) -> str:
        """Bitcoin Signed Message, base64 of the recovery header and the compact signature"""
        digest = get_magic_hash(message)
        sig = self.key.sign_digest_deterministic(digest, hashlib.sha256, sigencode_string)

        header = 31 if self.public.compressed else 27
        keys = VerifyingKey.from_public_key_recovery_with_digest(sig, digest, SECP256k1)
        pub_b = self.public.key.to_string()
        for i, key in enumerate(keys):
            if key.to_string() == pub_b:
                header += i
                break
        return base64.b64encode(bytes([header]) + sig).decode('utf8')

    def sign_tx(self, tx_hash: bytes, sighash: int = DEFAULT_SIGHASH, *, k: Optional[int] = None) -> bytes:
        """Script signature: DER + sighash byte"""
        return self.sign(tx_hash, k=k) + bytes([sighash])

    def to_wif(self,
               pubkey_network: Optional[NetworkType] = None,
               *,
               pubkey_compressed: Optional[bool] = None) -> str:
        network = self.public.network if pubkey_network is None else pubkey_network
        compressed = self.public.compressed if pubkey_compressed is None else pubkey_compressed

        b = PREFIXES['wif'][network] + self.key.to_string()
        if compressed:
            b += b'\x01'
        checksum = d_sha256(b)[:4]
        return b58encode(b + checksum).decode('utf8')

    def to_bytes(self) -> bytes:
        return self.key.to_string()


class PublicKey:
    def __init__(self, key: VerifyingKey, network: NetworkType = DEFAULT_NETWORK, *, compressed: bool = True):
        self.key = key
        self.network = network
        self.compressed = compressed

    @classmethod
    def from_bytes(cls, b: bytes, network: NetworkType = DEFAULT_NETWORK) -> Self:
        if len(b) not in (33, 65):
            raise exceptions.InvalidPublicKey(b.hex())
        try:
            key = VerifyingKey.from_string(b, SECP256k1)
        except (MalformedPointError, ValueError):
            raise exceptions.InvalidPublicKey(b.hex()) from None
        return cls(key, network, compressed=len(b) == 33)

    @classmethod
    def from_signed_message(cls, signature: str, message: str | bytes,
                            network: NetworkType = DEFAULT_NETWORK) -> Self:
        """Recover the public key from Bitcoin Signed Message signature"""
        b = decode_compact_signature(signature)
        header, sig = b[0], b[1:]

        if 27 <= header <= 30:
            recid, compressed = header - 27, False
        elif 31 <= header <= 34:
            recid, compressed = header - 31, True
        else:
            raise exceptions.InvalidSignature(signature, f'incorrect recovery header {header}')

        # ecdsa recovers only the points with x == r
        if recid > 1:
            raise exceptions.InvalidSignature(signature, f'unsupported recovery id {recid}')

        r, s = sigdecode_string(sig, SECP256k1.order)
        if not (0 < r < SECP256k1.order and 0 < s < SECP256k1.order):
            raise exceptions.InvalidSignature(signature, 'r or s is out of range')

        try:
            keys = VerifyingKey.from_public_key_recovery_with_digest(sig, get_magic_hash(message), SECP256k1)
        except (SquareRootError, InvalidPointError):
            raise exceptions.InvalidSignature(signature, 'public key can\'t be recovered') from None

        return cls(keys[recid], network, compressed=compressed)

    def change_network(self, network: Optional[NetworkType] = None) -> 'PublicKey':
        return self if network == self.network else PublicKey(
            self.key,
            self.network.toggle() if network is None else network,
            compressed=self.compressed
        )

    def get_hash160(self) -> bytes:
        return op_hash160(self.to_bytes())

    def get_address(self, network: Optional[NetworkType] = None) -> 'Address':
        return Address.from_pubkey(self, self.network if network is None else network)

    def verify(self, signature: bytes, digest: bytes) -> bool:
        """Verify DER signature (without sighash byte), malformed signatures are just invalid"""
        try:
            return self.key.verify_digest(signature, digest, sigdecode=sigdecode_der)
        except BadSignatureError:
            return False

    def verify_message(self, signature: str, message: str | bytes) -> bool:
        """Verify Bitcoin Signed Message signature (base64), the recovery header is ignored"""
        try:
            b = decode_compact_signature(signature)
        except exceptions.InvalidSignature:
            return False

        try:
            return self.key.verify_digest(b[1:], get_magic_hash(message), sigdecode=sigdecode_string)
        except BadSignatureError:
            return False

    def to_bytes(self) -> bytes:
        return self.key.to_string('compressed' if self.compressed else 'uncompressed')

    def __repr__(self) -> str:
        return pprint_class(self, [self.to_bytes().hex()], classmethod='from_bytes')


class Address:
    """P2PKH address"""

    def __init__(self, hash: bytes, network: NetworkType = DEFAULT_NETWORK):
        if len(hash) != HASH160_LENGTH:
            raise exceptions.InvalidHash160(hash.hex())

        self.hash = hash
        self.network = network
        self.pkscript = Script(opcode.OP_DUP, opcode.OP_HASH160, self.hash, opcode.OP_EQUALVERIFY, opcode.OP_CHECKSIG)
        self.string = self._to_string()

    @classmethod
    def from_string(cls, string: str) -> Self:
        try:
            d = b58decode(string.encode('utf8'))
        except ValueError:
            raise exceptions.InvalidAddress(string, 'base58 decode failed') from None

        # prefix, hash, checksum
        p, h, cs = d[:1], d[1:-4], d[-4:]
        if p not in PREFIXES['address_reversed']:
            raise exceptions.InvalidAddress(string, f'unknown prefix 0x{p.hex()}')
        if len(h) != HASH160_LENGTH:
            raise exceptions.InvalidAddress(string, 'incorrect length')
        if d_sha256(p + h)[:4] != cs:
            raise exceptions.InvalidAddress(string, 'checksum verification failed')
        return cls(h, PREFIXES['address_reversed'][p])

    @classmethod
    def from_pubkey(cls, key: PublicKey, network: NetworkType = DEFAULT_NETWORK) -> Self:
        return cls(key.get_hash160(), network)

    def change_network(self, network: Optional[NetworkType] = None) -> Self:
        return self if network == self.network else type(self)(
            self.hash,
            network=self.network.toggle() if network is None else network
        )

    def verify_message(self, signature: str, message: str | bytes) -> bool:
        """Check the public key recovered from Bitcoin Signed Message signature belongs to the address"""
        try:
            key = PublicKey.from_signed_message(signature, message, self.network)
        except exceptions.InvalidSignature:
            return False
        return key.get_address() == self

    def _to_string(self) -> str:
        b = PREFIXES['address'][self.network] + self.hash
        cs = d_sha256(b)[:4]
        return b58encode(b + cs).decode('utf8')

    def __str__(self):
        return self.string

    def __repr__(self):
        return pprint_class(self, [self.__str__().__repr__()], classmethod='from_string')

    def __eq__(self, other: object):
        return str(self) == str(other) if isinstance(other, Address) else NotImplemented

    def __hash__(self) -> int:
        return hash(self.string)
