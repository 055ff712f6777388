"""
Errors raised by the encoder, decoder and solver adapter.

Format and precondition errors are fatal and are never retried.
Rounding has no error class: it always finishes with a hard assignment.
"""

from typing import Optional


class BlockMRFError(Exception):
    """Base class for all blockmrf errors."""


class FormatError(BlockMRFError, ValueError):
    """Solver output did not match the UAI results format."""

    def __init__(
        self,
        message: str,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        self.expected = expected
        self.actual = actual
        self.line_number = line_number
        details = []
        if line_number is not None:
            details.append(f"line {line_number}")
        if expected is not None:
            details.append(f"expected {expected!r}")
        if actual is not None:
            details.append(f"got {actual!r}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)


class PreconditionError(BlockMRFError, TypeError):
    """Wrong kind of store handed to the encoder or decoder."""


class SolverError(BlockMRFError, RuntimeError):
    """External solver exited abnormally or produced no output."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        if returncode is not None:
            message = f"{message} (exit status {returncode})"
        tail = stderr.strip().splitlines()[-5:] if stderr else []
        if tail:
            message = message + "\n" + "\n".join(tail)
        super().__init__(message)
