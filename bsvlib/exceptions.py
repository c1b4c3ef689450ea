from string import Formatter


class Error(Exception):
    msg: str
    unknown_value = '<unknown>'

    def __init__(self, *args, **kwargs):

        for _ in range(sum(1 for x in Formatter().parse(self.msg) if x[1] is not None) - len(args)):
            args += self.unknown_value,

        self.msg = self.msg.format(*args, **kwargs)
        super().__init__(self.msg)

    def __str__(self):
        return self.msg


class InvalidError(Error):
    msg = 'INVALID ERROR'


class InvalidAddress(InvalidError):
    msg = 'invalid address - {} ({})'


class InvalidHash160(InvalidError):
    msg = 'invalid hash160 - {}'


class InvalidWIF(InvalidError):
    msg = 'invalid WIF - {} ({})'


class InvalidPublicKey(InvalidError):
    msg = 'invalid public key - {}'


class InvalidByteorder(InvalidError):
    msg = '"little"/"big" expected, {} received'


class UnsupportedByteorder(InvalidError):
    msg = '{} byteorder is not supported by {}'


class InvalidSignature(InvalidError):
    msg = 'invalid message signature - {} ({})'


class DecodeError(Error):
    msg = 'DECODE ERROR'


class TruncatedInput(DecodeError):
    msg = 'truncated input, {} bytes expected but {} remaining'


class TrailingData(DecodeError):
    msg = '{} unexpected trailing bytes after {}'


class InvalidMerkleProof(DecodeError):
    msg = 'invalid merkle proof - {}'


class SighashError(Error):
    msg = 'SIGHASH ERROR'


class SighashSingleRequiresInputAndOutputWithSameIndexes(SighashError):
    msg = 'sighash single signs the output with the same index as the input, the input index is {}, output with ' \
          'that index don\'t exists'


class MissingPrevout(SighashError):
    msg = 'input {} has no previous output, pass the spent TxOut explicitly'


class ContractError(Error):
    msg = 'CONTRACT ERROR'


class ContractParamsError(ContractError):
    msg = 'invalid {} params: {}'


class UnlockingNotSupported(ContractError):
    msg = '{} contract can\'t be unlocked'


class ContractModeError(ContractError):
    msg = '{} contract was built with {}(), {}() is required'


class ScriptError(Error):
    """Errors raised while a script is evaluated, VM catches them and stores in VM.error"""
    msg = 'SCRIPT ERROR'


class StackUnderflow(ScriptError):
    msg = '{} requires {} stack items, {} available'


class AltStackUnderflow(ScriptError):
    msg = '{} requires a non-empty alt stack'


class NumericOverflow(ScriptError):
    msg = 'numeric value {} is longer than {} bytes'


class VerifyFailed(ScriptError):
    msg = '{} failed'


class DisabledOpcode(ScriptError):
    msg = '{} is disabled'


class InvalidOpcode(ScriptError):
    msg = '{} is invalid'


class OpReturnError(ScriptError):
    msg = 'OP_RETURN was executed'


class UnbalancedConditional(ScriptError):
    msg = 'unbalanced conditional: {}'


class InvalidPushSize(ScriptError):
    msg = '{} item of {} bytes exceeds the limit of {} bytes'


class InvalidSplitRange(ScriptError):
    msg = 'split position {} is out of range for {} bytes'


class InvalidOperandSize(ScriptError):
    msg = '{} operands must be the same size ({} and {} received)'


class InvalidNumberRange(ScriptError):
    msg = '{} received an out of range value {}'


class DivisionByZero(ScriptError):
    msg = '{} by zero'


class InvalidStackOperation(ScriptError):
    msg = '{} received an invalid stack index {}'


class InvalidPubKeyCount(ScriptError):
    msg = 'invalid public key count {}'


class InvalidSigCount(ScriptError):
    msg = 'invalid signature count {} for {} public keys'


class MissingTxContext(ScriptError):
    msg = '{} requires a transaction context'
