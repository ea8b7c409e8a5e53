"""Exception hierarchy shared by the decoding and analysis passes."""

from __future__ import annotations

from typing import Optional


class MalformedILError(ValueError):
    """Raised when an IL buffer cannot be interpreted.

    The offending buffer and offset are kept on the instance so callers can
    point at the exact byte that broke the decoder or the run builder.
    """

    def __init__(self, message: str, il: bytes, offset: int) -> None:
        super().__init__(f"{message} at IL_{offset:04X}")
        self.il = il
        self.offset = offset


class UnknownOpCodeError(MalformedILError):
    """Raised for byte sequences that do not encode a known opcode."""

    def __init__(self, il: bytes, offset: int) -> None:
        super().__init__("unknown opcode", il, offset)


class TruncatedInstructionError(MalformedILError):
    """Raised when an operand extends past the end of the buffer."""


class BranchTargetError(MalformedILError):
    """Raised when a control-flow target is not an instruction boundary."""


class RunBoundaryError(MalformedILError):
    """Raised when a run does not end where the next run starts."""


class UnsupportedILError(NotImplementedError):
    """Base class for encodings the fixed tables do not describe."""


class UnsupportedOperandError(UnsupportedILError):
    pass


class UnsupportedStackBehaviourError(UnsupportedILError):
    def __init__(self, name: str, behaviour: object, detail: Optional[str] = None) -> None:
        message = f"unsupported stack behaviour {behaviour} for {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.name = name
        self.behaviour = behaviour


class UnresolvedTokenError(LookupError):
    """Raised when a metadata token has no method signature."""

    def __init__(self, token: int) -> None:
        super().__init__(f"no method signature for token 0x{token:08X}")
        self.token = token


__all__ = [
    "MalformedILError",
    "UnknownOpCodeError",
    "TruncatedInstructionError",
    "BranchTargetError",
    "RunBoundaryError",
    "UnsupportedILError",
    "UnsupportedOperandError",
    "UnsupportedStackBehaviourError",
    "UnresolvedTokenError",
]
