"""
Identifier Interning Registry.

Terms (property names) and types (node classifications) are fully
qualified IRIs. The registry canonicalizes each IRI to a single
Identifier instance so that comparisons on hot paths are identity checks.

Key design decisions:
- One process-wide registry, created on first use and preloaded with the
  built-in vocabulary
- Lock-free lookups; creation happens at most once per IRI under a lock
- JSON-LD keywords are a closed enumeration and never interned
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

import polars as pl


class JsonLdKeyword(str, Enum):
    """JSON-LD keywords understood by the codec."""
    ID = "@id"
    TYPE = "@type"
    VALUE = "@value"
    LANGUAGE = "@language"
    CONTAINER = "@container"
    LIST = "@list"
    SET = "@set"
    REVERSE = "@reverse"
    INDEX = "@index"
    BASE = "@base"
    VOCAB = "@vocab"
    GRAPH = "@graph"
    CONTEXT = "@context"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def is_keyword(cls, value: object) -> bool:
        """Check if a value is shaped like a JSON-LD keyword."""
        return isinstance(value, str) and value.startswith("@")


# =============================================================================
# Identifier
# =============================================================================

@dataclass(frozen=True, slots=True)
class Identifier:
    """
    An interned term or type IRI.

    Attributes:
        iri: The fully qualified (or relative) IRI
        builtin: True when the identifier was preloaded from the vocabulary
    """
    iri: str
    builtin: bool = field(default=False, compare=False)

    def __post_init__(self):
        if not self.iri:
            raise ValueError("identifier IRI must not be empty")
        if self.iri.startswith("@"):
            raise ValueError(
                f"keyword-shaped identifier not allowed: {self.iri} (use JsonLdKeyword)"
            )

    def __str__(self) -> str:
        return self.iri


# Terms and types share one representation; the aliases document intent.
Term = Identifier
Type = Identifier


# =============================================================================
# Registry
# =============================================================================

class IdentifierRegistry:
    """
    Interning cache mapping IRI strings to Identifier instances.

    Thread-safety: lookups read a plain dict without locking; creation of
    a missing entry is serialized so each IRI is created at most once.
    """

    def __init__(self, builtins: Iterable[str] = ()):
        self._identifiers: dict[str, Identifier] = {}
        self._lock = threading.Lock()
        for iri in builtins:
            if iri not in self._identifiers:
                self._identifiers[iri] = Identifier(iri, builtin=True)

    def intern(self, iri: str) -> Identifier:
        """
        Return the canonical Identifier for an IRI, creating it if needed.

        Raises:
            ValueError: If the IRI is empty or keyword-shaped
        """
        existing = self._identifiers.get(iri)
        if existing is not None:
            return existing
        with self._lock:
            existing = self._identifiers.get(iri)
            if existing is None:
                existing = Identifier(iri)
                self._identifiers[iri] = existing
            return existing

    def lookup(self, iri: str) -> Optional[Identifier]:
        """Get the Identifier for an IRI if it has been interned, without creating it."""
        return self._identifiers.get(iri)

    def __contains__(self, iri: object) -> bool:
        return iri in self._identifiers

    def __len__(self) -> int:
        return len(self._identifiers)

    def __iter__(self) -> Iterator[Identifier]:
        return iter(list(self._identifiers.values()))

    def to_dataframe(self) -> pl.DataFrame:
        """
        Export the interned identifiers to a Polars DataFrame.

        Columns:
        - iri: string
        - builtin: boolean
        """
        identifiers = list(self._identifiers.values())
        return pl.DataFrame({
            "iri": pl.Series([i.iri for i in identifiers], dtype=pl.Utf8),
            "builtin": pl.Series([i.builtin for i in identifiers], dtype=pl.Boolean),
        })


_registry: Optional[IdentifierRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> IdentifierRegistry:
    """Return the process-wide registry, preloading the built-in vocabulary on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                from bdio.vocabulary import builtin_iris
                _registry = IdentifierRegistry(builtin_iris())
    return _registry


def intern(iri: str) -> Identifier:
    """Intern an IRI in the process-wide registry."""
    if isinstance(iri, Identifier):
        return iri
    return get_registry().intern(iri)
