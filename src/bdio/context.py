"""
Linked-Data Context.

A Context maps the short names used in compacted documents to fully
qualified term and type IRIs for one specification version, and converts
between Nodes and their wire form.

Key design decisions:
- Contexts are immutable; migrating to another version builds a new one
- Keys and types are resolved against the vocabulary, identifiers and
  references against the base IRI
- Compaction picks the exact alias, else the longest matching prefix
  (earliest registered on ties), else strips the vocabulary
- Values are converted by a ValueObjectMapper according to the term's
  datatype and container
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

from bdio import specification
from bdio.datatype.mapper import ValueObjectMapper
from bdio.errors import InvalidInput
from bdio.model import Node
from bdio.specification import TermDefinition
from bdio.terms import Identifier, JsonLdKeyword, intern
from bdio.vocabulary import BILL_OF_MATERIALS, SPEC_VERSION, Container, Datatype

logger = logging.getLogger(__name__)

ID = JsonLdKeyword.ID.value
TYPE = JsonLdKeyword.TYPE.value
VALUE = JsonLdKeyword.VALUE.value
LIST = JsonLdKeyword.LIST.value
SET = JsonLdKeyword.SET.value


def _check_base(base: Optional[str]) -> Optional[str]:
    if not base:
        return None
    parsed = urlparse(base)
    if not parsed.scheme or not (parsed.netloc or parsed.path.startswith("/")):
        raise ValueError(f"base must be an absolute hierarchical URI: {base}")
    return base


class Context:
    """
    The active mapping used to expand and compact one document version.

    Example:
        context = Context.for_writing()
        wire = context.compact(node)        # {"@id": ..., "@type": "File", "path": ...}
        node = context.expand_to_node(wire)
    """

    def __init__(
        self,
        base: Optional[str] = None,
        vocab: Optional[str] = None,
        spec_version: str = "",
        definitions: Optional[Dict[str, TermDefinition]] = None,
        mapper: Optional[ValueObjectMapper] = None,
    ):
        """
        Args:
            base: Absolute hierarchical IRI identifiers are resolved against
            vocab: IRI prepended to unqualified terms and types
            spec_version: Version of the specification the definitions come from
            definitions: Alias table, in registration order
            mapper: Value converter; defaults to the built-in datatypes

        Raises:
            ValueError: If the base is relative or not hierarchical
        """
        self._base = _check_base(base)
        self._vocab = vocab or None
        self._spec_version = spec_version or ""
        self._definitions: Dict[str, TermDefinition] = dict(definitions or {})
        self._mapper = mapper or ValueObjectMapper()

        # First registered alias wins when several share an IRI
        self._by_iri: Dict[str, str] = {}
        for alias, definition in self._definitions.items():
            self._by_iri.setdefault(definition.term.iri, alias)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def for_reading(cls, version: Optional[str] = None, base: Optional[str] = None) -> "Context":
        """
        Build a context that interprets documents of `version` under current semantics.

        Raises:
            UnsupportedSpecVersion: If the version is not known
        """
        spec = specification.for_version(version)
        return cls(base, spec.vocab, spec.version, spec.import_definitions())

    @classmethod
    def for_writing(cls, version: Optional[str] = None, base: Optional[str] = None) -> "Context":
        """Build a context producing documents of `version` (the latest by default)."""
        spec = specification.latest() if version is None else specification.for_version(version)
        return cls(base, spec.vocab, spec.version, spec.as_term_definitions())

    def migrate_for(self, node: Node) -> Optional["Context"]:
        """
        Return the context for the version declared by `node`.

        Returns None when the node does not declare a version or declares the
        version this context already reads.
        """
        version = version_of(node)
        if version is None or version == self._spec_version:
            return None
        return Context.for_reading(version, self._base)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def base(self) -> Optional[str]:
        return self._base

    @property
    def vocab(self) -> Optional[str]:
        return self._vocab

    @property
    def spec_version(self) -> str:
        return self._spec_version

    @property
    def mapper(self) -> ValueObjectMapper:
        return self._mapper

    @property
    def definitions(self) -> Dict[str, TermDefinition]:
        return dict(self._definitions)

    def definition(self, term: Identifier) -> TermDefinition:
        """Return the definition of a term, or a plain default one."""
        alias = self._by_iri.get(term.iri)
        if alias is not None:
            return self._definitions[alias]
        return TermDefinition(term)

    def term(self, alias: str) -> Identifier:
        """Resolve a short name to its term identifier."""
        return intern(self.expand_iri(alias, relative=False))

    def type(self, alias: str) -> Identifier:
        """Resolve a short name to its type identifier."""
        return intern(self.expand_iri(alias, relative=False))

    # =========================================================================
    # IRI resolution
    # =========================================================================

    def expand_iri(self, value: Optional[str], relative: bool = False) -> Optional[str]:
        """
        Expand a short name, compact IRI or relative reference.

        Args:
            value: The value to expand
            relative: Resolve against the base instead of the vocabulary
        """
        if value is None or JsonLdKeyword.is_keyword(value):
            return value
        definition = self._definitions.get(value)
        if definition is not None:
            return definition.term.iri
        pos = value.find(":")
        if pos > 0:
            prefix = self._definitions.get(value[:pos])
            if prefix is not None:
                return prefix.term.iri + value[pos + 1:]
            return value
        if relative:
            return urljoin(self._base, value) if self._base else value
        return self._vocab + value if self._vocab else value

    def compact_iri(self, value: Optional[str], vocab: bool = True) -> Optional[str]:
        """
        Shorten an IRI; unresolvable values are returned unchanged.

        Args:
            value: The IRI to compact
            vocab: Strip the vocabulary when no alias or prefix matches
        """
        if value is None or JsonLdKeyword.is_keyword(value):
            return value
        alias = self._by_iri.get(value)
        if alias is not None:
            return alias

        prefix = None
        match_length = 0
        for name, definition in self._definitions.items():
            iri = definition.term.iri
            if len(iri) > match_length and len(value) > len(iri) and value.startswith(iri):
                prefix = name
                match_length = len(iri)
        if prefix is not None:
            return f"{prefix}:{value[match_length:]}"

        if vocab and self._vocab and value.startswith(self._vocab) and len(value) > len(self._vocab):
            return value[len(self._vocab):]
        return value

    # =========================================================================
    # Expansion (Node -> expanded wire map)
    # =========================================================================

    def expand(self, node: Node) -> Dict[str, Any]:
        """
        Expand a node so every key, type and identifier is fully qualified.

        Raises:
            InvalidInput: If a value does not fit its term's datatype
            UnsupportedType: If a value has no datatype handler
        """
        return self._expand_node(node, None)

    def _expand_node(self, node: Node, definition: Optional[TermDefinition]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if node.id is not None:
            result[ID] = self.expand_iri(node.id, relative=True)

        types = {t.iri for t in node.types}
        if definition is not None:
            types.update(t.iri for t in definition.class_types)
        if types:
            result[TYPE] = sorted(types)

        for term, value in node.data.items():
            term_definition = self.definition(term)
            try:
                expanded = self._expand_value(term_definition, value)
            except InvalidInput as e:
                raise e.located(self.compact_iri(term.iri), node.id) from e
            if expanded is not None:
                result[term.iri] = expanded
        return result

    def _expand_value(self, definition: TermDefinition, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (list, tuple, set, frozenset)):
            expanded = [self._expand_value(definition, v) for v in value]
            return definition.container.copy_of(v for v in expanded if v is not None)
        if isinstance(value, Node):
            return self._expand_node(value, definition)
        if isinstance(value, dict):
            return self._expand_node(self.expand_to_node(value, definition), definition)
        if isinstance(value, Enum):
            value = value.value
        if definition.is_reference:
            return {ID: self.expand_iri(str(value), relative=True)}
        if definition.datatype is Datatype.DEFAULT:
            return self._mapper.to_value_object(value)
        return self._mapper.to_typed_value_object(definition.datatype, value)

    # =========================================================================
    # Compaction (Node -> compacted wire map)
    # =========================================================================

    def compact(self, node: Node) -> Dict[str, Any]:
        """
        Compact a node into its wire form.

        Empty collections are omitted and one-element collections become the
        bare element.
        """
        return self._compact_map(self.expand(node), None)

    def _compact_map(self, expanded: Dict[str, Any], definition: Optional[TermDefinition]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in expanded.items():
            if key == ID:
                result[ID] = value
            elif key == TYPE:
                omitted = {t.iri for t in definition.class_types} if definition is not None else set()
                types = [self.compact_iri(t) for t in value if t not in omitted]
                if types:
                    result[TYPE] = types[0] if len(types) == 1 else types
            else:
                term_definition = self.definition(intern(key))
                compacted = self._compact_value(term_definition, value)
                if compacted is not None:
                    result[self.compact_iri(key)] = compacted
        return result

    def _compact_value(self, definition: TermDefinition, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, list):
            values = [v for v in (self._compact_value(definition, v) for v in value) if v is not None]
            if not values:
                return None
            if len(values) == 1:
                return values[0]
            return definition.container.copy_of(values)
        if isinstance(value, dict):
            if VALUE in value:
                datatype = value.get(TYPE)
                if datatype is None or datatype == definition.datatype.iri:
                    return value[VALUE]
                return dict(value)
            if len(value) == 1 and ID in value:
                if definition.is_reference:
                    return self.compact_iri(value[ID], vocab=False)
                return dict(value)
            return self._compact_map(value, definition)
        if definition.is_reference:
            return self.compact_iri(str(value), vocab=False)
        return value

    # =========================================================================
    # Wire map -> Node
    # =========================================================================

    def expand_to_node(self, wire: Dict[str, Any], definition: Optional[TermDefinition] = None) -> Node:
        """
        Build a Node from a compacted or expanded wire map.

        Args:
            wire: The wire map
            definition: Definition of the term holding an embedded map; its
                declared class types are added to the node

        Raises:
            InvalidInput: If a value does not fit its term's datatype
        """
        node_id = wire.get(ID)
        if node_id is not None:
            node_id = self.expand_iri(str(node_id), relative=True)

        types: List[Identifier] = []
        raw_types = wire.get(TYPE)
        if raw_types is not None:
            if not isinstance(raw_types, list):
                raw_types = [raw_types]
            types.extend(intern(self.expand_iri(str(t), relative=False)) for t in raw_types)
        if definition is not None:
            types.extend(definition.class_types)

        data: Dict[Identifier, Any] = {}
        for key, value in wire.items():
            iri = self.expand_iri(key, relative=False)
            if JsonLdKeyword.is_keyword(iri):
                continue
            term = intern(iri)
            try:
                decoded = self._value_from_wire(self.definition(term), value)
            except InvalidInput as e:
                raise e.located(key, node_id) from e
            if decoded is not None:
                data[term] = decoded
        return Node(node_id, frozenset(types), data)

    def _value_from_wire(self, definition: TermDefinition, value: Any) -> Any:
        if isinstance(value, list):
            values = [v for v in (self._single_from_wire(definition, v) for v in value) if v is not None]
            if not values:
                return None
            return definition.container.collect(values)
        decoded = self._single_from_wire(definition, value)
        if isinstance(decoded, list):
            return decoded
        if decoded is not None and definition.container in (Container.LIST, Container.SET):
            return [decoded]
        return decoded

    def _single_from_wire(self, definition: TermDefinition, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, dict):
            if VALUE in value:
                return self._mapper.from_field_value(value)
            if LIST in value or SET in value:
                return self._value_from_wire(definition, value.get(LIST, value.get(SET)))
            if len(value) == 1 and ID in value:
                return self.expand_iri(str(value[ID]), relative=True)
            return self.expand_to_node(value, definition)
        if isinstance(value, list):
            return self._value_from_wire(definition, value)
        if definition.is_reference:
            return self.expand_iri(str(value), relative=True)
        if definition.datatype is not Datatype.DEFAULT:
            return self._mapper.from_field_value({VALUE: value, TYPE: definition.datatype.iri})
        return value

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize(self) -> Dict[str, Any]:
        """Return the JSON-LD "@context" map describing this context."""
        result: Dict[str, Any] = {}
        if self._base:
            result[JsonLdKeyword.BASE.value] = self._base
        if self._vocab:
            result[JsonLdKeyword.VOCAB.value] = self._vocab
        for alias, definition in self._definitions.items():
            result[alias] = definition.to_json(self.compact_iri)
        return result

    def __repr__(self) -> str:
        return (
            f"Context(spec_version={self._spec_version!r}, base={self._base!r}, "
            f"terms={len(self._definitions)})"
        )


def version_of(node: Node) -> Optional[str]:
    """Return the specification version a metadata node declares, if any."""
    if not node.has_type(BILL_OF_MATERIALS):
        return None
    version = node.get(SPEC_VERSION)
    if isinstance(version, list):
        version = version[0] if version else None
    return None if version is None else str(version)
