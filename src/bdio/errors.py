"""
Codec error hierarchy for BDIO.

Every failure raised while reading or writing a BDIO document derives from
CodecError so callers can decide to abort a document or skip a node with a
single except clause.
"""

from typing import Any, Optional


class CodecError(Exception):
    """Base class for BDIO codec failures."""
    pass


class MalformedInput(CodecError):
    """Raised when the archive or entry payload does not have the expected structure."""

    def __init__(self, message: str, entry_name: Optional[str] = None):
        self.entry_name = entry_name
        if entry_name:
            message = f"{message} (entry '{entry_name}')"
        super().__init__(message)


class InvalidInput(CodecError, ValueError):
    """Raised when a wire value cannot be coerced to a known datatype."""

    def __init__(
        self,
        value: Any,
        datatype: str,
        term: Optional[str] = None,
        node_id: Optional[str] = None,
    ):
        self.value = value
        self.datatype = datatype
        self.term = term
        self.node_id = node_id
        message = f"invalid input {value!r} ({type(value).__name__}) for datatype {datatype}"
        if term:
            message += f", term '{term}'"
        if node_id:
            message += f", node '{node_id}'"
        super().__init__(message)

    def located(self, term: Optional[str] = None, node_id: Optional[str] = None) -> "InvalidInput":
        """Return a copy of this error carrying the term and node it was found on."""
        return InvalidInput(
            self.value,
            self.datatype,
            term=term or self.term,
            node_id=node_id or self.node_id,
        )


class UnsupportedSpecVersion(CodecError):
    """Raised when a document declares a specification version this library does not know."""

    def __init__(self, version: Optional[str]):
        self.version = version
        super().__init__(f"unknown BDIO specification version: {version!r}")


class UnsupportedType(CodecError):
    """Raised when no datatype handler accepts a value for serialization."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"no datatype handler for value {value!r} ({type(value).__name__})"
        )


class EntrySizeViolation(CodecError):
    """Raised when a serialized archive entry exceeds the maximum entry size."""

    def __init__(self, entry_name: Optional[str], estimated_size: int, max_size: int):
        self.entry_name = entry_name
        self.estimated_size = estimated_size
        self.max_size = max_size
        super().__init__(
            f"entry {entry_name or '<unnamed>'} is {estimated_size} bytes, "
            f"exceeding the maximum of {max_size} bytes"
        )


class ReaderFailedError(CodecError):
    """Raised when a reader is used after it failed on malformed input."""

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        message = "reader has failed and cannot be used"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
