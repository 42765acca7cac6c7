"""
Digest values ("algorithm:value"), e.g. "sha1:2fd4e1c6...".
"""

import re
from dataclasses import dataclass

from bdio.errors import InvalidInput

_ALGORITHM = re.compile(r"[A-Za-z0-9+.\-]+")


@dataclass(frozen=True, slots=True)
class Digest:
    """A fingerprint produced by a named algorithm."""
    algorithm: str
    value: str

    def __post_init__(self):
        if not _ALGORITHM.fullmatch(self.algorithm or ""):
            raise InvalidInput(f"{self.algorithm}:{self.value}", "Digest")
        if not self.value or ":" in self.value:
            raise InvalidInput(f"{self.algorithm}:{self.value}", "Digest")

    @classmethod
    def parse(cls, text: str) -> "Digest":
        """
        Parse the textual form.

        Raises:
            InvalidInput: Unless the text is exactly one non-empty algorithm
                and one non-empty value separated by a single ':'
        """
        if not isinstance(text, str) or text.count(":") != 1:
            raise InvalidInput(text, "Digest")
        algorithm, value = text.split(":")
        return cls(algorithm, value)

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.value}"
