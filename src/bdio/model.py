"""
Graph node model.

A Node is an immutable value: an optional identifier, a set of types and a
map of term to value. Nodes are assembled with a NodeBuilder, which
validates on `build()`. Builders for each vocabulary class preset the
node type and accept vocabulary short names for properties.

Example:
    node = (
        file_node("http://example.com/files/1")
        .set("path", "./foo/bar")
        .set("byteCount", 10)
        .build()
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import urljoin, urlparse

from bdio.datatype.product import Products
from bdio.terms import Identifier, JsonLdKeyword, intern
from bdio.vocabulary import (
    BILL_OF_MATERIALS,
    SPEC_VERSION,
    VOCAB,
    BdioClass,
    property_for_iri,
    property_for_name,
)

TermLike = Union[Identifier, str]

DEFAULT_SKOLEM_BASE = "http://example.com/"
SKOLEM_PATH = "/.well-known/genid/"


def _qualify(name: str) -> str:
    # Bare names belong to the current vocabulary, as a writing context expands them
    if name and ":" not in name and not JsonLdKeyword.is_keyword(name):
        return VOCAB + name
    return name


def _identifier(value: TermLike) -> Identifier:
    if isinstance(value, Identifier):
        return value
    prop = property_for_name(value)
    return intern(prop.iri if prop is not None else _qualify(value))


def _normalize(value: Any) -> Any:
    # Naive datetimes are taken as UTC so values survive serialization unchanged
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# Node
# =============================================================================

@dataclass(frozen=True, eq=True)
class Node:
    """
    An immutable graph node.

    Attributes:
        id: Identifier of the node, None for anonymous nodes
        types: Node classifications
        data: Values keyed by term; never contains @id or @type
    """
    id: Optional[str] = None
    types: frozenset = field(default_factory=frozenset)
    data: Mapping[Identifier, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "types", frozenset(self.types))
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def __hash__(self) -> int:
        return hash((self.id, self.types))

    def get(self, term: TermLike, default: Any = None) -> Any:
        """Get a value by term, vocabulary short name or IRI."""
        return self.data.get(_identifier(term), default)

    def __getitem__(self, term: TermLike) -> Any:
        return self.data[_identifier(term)]

    def __contains__(self, term: TermLike) -> bool:
        return _identifier(term) in self.data

    def has_type(self, type_: TermLike) -> bool:
        if isinstance(type_, BdioClass):
            type_ = type_.iri
        return _identifier(type_) in self.types

    @property
    def is_anonymous(self) -> bool:
        return self.id is None

    def with_id(self, node_id: str) -> "Node":
        return Node(node_id, self.types, self.data)

    def to_builder(self) -> "NodeBuilder":
        builder = NodeBuilder(self.id, self.types)
        for term, value in self.data.items():
            builder.put(term, value)
        return builder

    def __repr__(self) -> str:
        types = sorted(str(t) for t in self.types)
        data = {str(k): v for k, v in self.data.items()}
        return f"Node(id={self.id!r}, types={types}, data={data})"


# =============================================================================
# Builder
# =============================================================================

class NodeBuilder:
    """
    Mutable assembly of a Node.

    Terms may be given as Identifiers, vocabulary short names or IRIs.
    """

    def __init__(self, node_id: Optional[str] = None, types: Iterable[Any] = ()):
        self._id = node_id
        self._types: List[Identifier] = []
        self._data: Dict[Identifier, Any] = {}
        for type_ in types:
            self.type(type_)

    def id(self, node_id: Optional[str]) -> "NodeBuilder":
        self._id = node_id
        return self

    def type(self, type_: Any) -> "NodeBuilder":
        if isinstance(type_, BdioClass):
            type_ = type_.iri
        identifier = type_ if isinstance(type_, Identifier) else intern(_qualify(type_))
        if identifier not in self._types:
            self._types.append(identifier)
        return self

    def put(self, term: TermLike, value: Any) -> "NodeBuilder":
        """Set the value of a term, replacing any previous value."""
        identifier = _identifier(term)
        if value is None:
            self._data.pop(identifier, None)
        elif isinstance(value, (list, tuple)):
            self._data[identifier] = [_normalize(v) for v in value]
        else:
            self._data[identifier] = _normalize(value)
        return self

    set = put

    def add(self, term: TermLike, value: Any) -> "NodeBuilder":
        """Append a value to a multi-valued term."""
        identifier = _identifier(term)
        value = _normalize(value)
        current = self._data.get(identifier)
        if current is None:
            self._data[identifier] = [value]
        elif isinstance(current, list):
            current.append(value)
        else:
            self._data[identifier] = [current, value]
        return self

    def build(self, strict_domains: bool = False) -> Node:
        """
        Create the Node.

        Args:
            strict_domains: Reject vocabulary terms not allowed on the node types

        Raises:
            ValueError: If the identifier is empty or a term is out of its domain
        """
        if self._id is not None and (not isinstance(self._id, str) or not self._id):
            raise ValueError(f"node identifier must be a non-empty string: {self._id!r}")
        if strict_domains:
            type_iris = [t.iri for t in self._types]
            for term in self._data:
                prop = property_for_iri(term.iri)
                if prop is not None and not prop.allows(type_iris):
                    raise ValueError(
                        f"term '{prop.name}' is not allowed on node {self._id or '<anonymous>'} "
                        f"with types {sorted(type_iris)}"
                    )
        return Node(self._id, frozenset(self._types), dict(self._data))


def node_of(bdio_class: BdioClass, node_id: Optional[str] = None) -> NodeBuilder:
    """Start a node of a vocabulary class."""
    return NodeBuilder(node_id, [bdio_class])


def annotation_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.ANNOTATION, node_id)


def component_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.COMPONENT, node_id)


def container_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.CONTAINER, node_id)


def container_layer_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.CONTAINER_LAYER, node_id)


def dependency_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.DEPENDENCY, node_id)


def file_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.FILE, node_id)


def license_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.LICENSE, node_id)


def note_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.NOTE, node_id)


def project_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.PROJECT, node_id)


def repository_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.REPOSITORY, node_id)


def vulnerability_node(node_id: Optional[str] = None) -> NodeBuilder:
    return node_of(BdioClass.VULNERABILITY, node_id)


# =============================================================================
# Skolem identifiers
# =============================================================================

def mint_skolem_identifier(base: Optional[str] = None) -> str:
    """Mint a globally unique identifier for an anonymous node."""
    return urljoin(base or DEFAULT_SKOLEM_BASE, SKOLEM_PATH + uuid.uuid4().hex)


def is_skolem_identifier(iri: Optional[str]) -> bool:
    if not iri:
        return False
    return urlparse(iri).path.startswith(SKOLEM_PATH)


# =============================================================================
# Document metadata
# =============================================================================

@dataclass
class BdioMetadata:
    """
    Document level metadata written as the header node.

    Attributes:
        id: Document identifier (a random URN by default)
        name: Human readable document name
        creation_date_time: When the document was created
        creator: User that created the document
        publisher: Tools that produced the document
        spec_version: Version of the specification the document follows
        extra: Other metadata properties keyed by vocabulary short name
    """
    id: str = field(default_factory=lambda: f"urn:uuid:{uuid.uuid4()}")
    name: Optional[str] = None
    creation_date_time: Optional[datetime] = None
    creator: Optional[str] = None
    publisher: Optional[Products] = None
    spec_version: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def now(cls, **kwargs) -> "BdioMetadata":
        return cls(creation_date_time=datetime.now(timezone.utc), **kwargs)

    def as_node(self, context=None) -> Node:
        """Build the header node, stamping the version of `context` when given."""
        builder = NodeBuilder(self.id, [BILL_OF_MATERIALS])
        version = context.spec_version if context is not None else self.spec_version
        if version:
            builder.put(SPEC_VERSION, version)
        builder.put("name", self.name)
        builder.put("creationDateTime", self.creation_date_time)
        builder.put("creator", self.creator)
        builder.put("publisher", self.publisher)
        for key, value in self.extra.items():
            builder.put(key, value)
        return builder.build()

    @classmethod
    def from_node(cls, node: Node) -> "BdioMetadata":
        known = {"name", "creationDateTime", "creator", "publisher"}
        extra = {}
        for term, value in node.data.items():
            prop = property_for_iri(term.iri)
            if term.iri == SPEC_VERSION or (prop is not None and prop.name in known):
                continue
            if prop is not None:
                extra[prop.name] = value
            elif term.iri.startswith(VOCAB):
                extra[term.iri[len(VOCAB):]] = value
            else:
                extra[term.iri] = value
        return cls(
            id=node.id,
            name=node.get("name"),
            creation_date_time=node.get("creationDateTime"),
            creator=node.get("creator"),
            publisher=node.get("publisher"),
            spec_version=node.get(SPEC_VERSION),
            extra=extra,
        )

    def as_named_graph(self, nodes: Any, *keys: str, context=None) -> Dict[str, Any]:
        """
        Return the compacted metadata as a named graph holding `nodes`.

        Args:
            nodes: Value of "@graph"
            keys: If given, only these compacted keys are kept
            context: Context used to compact the metadata (latest by default)
        """
        if context is None:
            from bdio.context import Context
            context = Context.for_writing()
        graph = context.compact(self.as_node(context))
        if keys:
            graph = {k: v for k, v in graph.items() if k in keys}
        graph["@graph"] = nodes
        return graph
