"""
Configuration for reading and writing BDIO documents.

Provides:
- BdioOptions with dict and JSON file round trips
- OptionsValidator
- Context construction from options
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from bdio import specification
from bdio.context import Context
from bdio.vocabulary import MAX_ENTRY_SIZE, ContentType, ContextVersion

logger = logging.getLogger(__name__)


class OptionsValidationError(Exception):
    """Options validation error."""
    pass


@dataclass
class BdioOptions:
    """
    Options for a document session.

    Attributes:
        base: Base IRI identifiers are resolved against ("" for none)
        spec_version: Version to write (None for the latest)
        max_entry_weight: Estimated weight bound of one data entry
        max_entry_size: Hard bound on the serialized bytes of one entry
        expand_context: Context version assumed before the header is read
            (None for the baseline)
        strict_domains: Reject terms outside the domain of a node's types
    """
    base: str = ""
    spec_version: Optional[str] = None
    max_entry_weight: int = MAX_ENTRY_SIZE
    max_entry_size: int = MAX_ENTRY_SIZE
    expand_context: Optional[str] = None
    strict_domains: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "spec_version": self.spec_version,
            "max_entry_weight": self.max_entry_weight,
            "max_entry_size": self.max_entry_size,
            "expand_context": self.expand_context,
            "strict_domains": self.strict_domains,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BdioOptions":
        expand_context = data.get("expand_context")
        if expand_context is not None and expand_context not in {v.value for v in ContextVersion}:
            logger.warning(f"Ignoring unknown expand_context {expand_context!r}")
            expand_context = None
        return cls(
            base=data.get("base", ""),
            spec_version=data.get("spec_version"),
            max_entry_weight=data.get("max_entry_weight", MAX_ENTRY_SIZE),
            max_entry_size=data.get("max_entry_size", MAX_ENTRY_SIZE),
            expand_context=expand_context,
            strict_domains=data.get("strict_domains", False),
        )

    def save(self, path: Path) -> None:
        """Save options to a JSON file."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "BdioOptions":
        """Load options from a JSON file, using defaults if it does not exist."""
        path = Path(path)
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls.from_dict(data)
        return cls()

    def with_content_type(self, content_type: ContentType) -> "BdioOptions":
        """
        Return options reading with the context implied by a content type.

        Raises:
            ValueError: For plain JSON, which implies no context
        """
        version = content_type.default_context()
        if version is None:
            return self
        return replace(self, expand_context=version.value)

    def reading_context(self) -> Context:
        """Context used before a document declares its version."""
        return Context.for_reading(self.expand_context, self.base or None)

    def writing_context(self) -> Context:
        """Context used to write documents."""
        return Context.for_writing(self.spec_version, self.base or None)


class OptionsValidator:
    """Validates BdioOptions."""

    @staticmethod
    def validate(options: BdioOptions) -> List[str]:
        """
        Validate options.

        Returns list of error messages (empty if valid).
        """
        errors = []

        if options.base:
            parsed = urlparse(options.base)
            if not parsed.scheme or not (parsed.netloc or parsed.path.startswith("/")):
                errors.append(f"base must be an absolute hierarchical URI: {options.base}")

        if options.spec_version is not None and options.spec_version not in specification.versions():
            errors.append(f"Unknown spec_version: {options.spec_version}")

        if options.expand_context is not None and options.expand_context not in {
            v.value for v in ContextVersion
        }:
            errors.append(f"Unknown expand_context: {options.expand_context}")

        if options.max_entry_weight < 1:
            errors.append("max_entry_weight must be at least 1")

        if options.max_entry_size < 1:
            errors.append("max_entry_size must be at least 1")

        return errors

    @staticmethod
    def validate_or_raise(options: BdioOptions) -> None:
        """Validate options, raising on errors."""
        errors = OptionsValidator.validate(options)
        if errors:
            raise OptionsValidationError("; ".join(errors))
