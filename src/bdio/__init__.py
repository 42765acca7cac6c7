"""
BDIO: Black Duck I/O, a bill of materials document codec.

Reads and writes software bills of materials as graphs of typed nodes,
stored as size-bounded chunks in an archive, across every published
revision of the format.
"""

__version__ = "0.1.0"

from bdio.archive import (
    BdioArchiveReader,
    BdioWriter,
    NodeBatch,
    current_context,
    decode,
    encode,
)
from bdio.context import Context
from bdio.datatype import (
    ContentRange,
    Digest,
    MediaType,
    Product,
    Products,
    ValueObjectMapper,
)
from bdio.errors import (
    CodecError,
    EntrySizeViolation,
    InvalidInput,
    MalformedInput,
    ReaderFailedError,
    UnsupportedSpecVersion,
    UnsupportedType,
)
from bdio.model import (
    BdioMetadata,
    Node,
    NodeBuilder,
    annotation_node,
    component_node,
    container_layer_node,
    container_node,
    dependency_node,
    file_node,
    license_node,
    mint_skolem_identifier,
    note_node,
    project_node,
    repository_node,
    vulnerability_node,
)
from bdio.options import BdioOptions, OptionsValidationError, OptionsValidator
from bdio.partitioning import Partitioner, estimate_weight, partition
from bdio.reader import BdioReader, ReaderState, scan_for_spec_version
from bdio.specification import Specification, TermDefinition, for_version, latest
from bdio.terms import Identifier, JsonLdKeyword, get_registry, intern
from bdio.vocabulary import (
    BdioClass,
    Container,
    ContentType,
    ContextVersion,
    Datatype,
    FileSystemType,
)

__all__ = [
    # Archive codec
    "BdioArchiveReader",
    "BdioWriter",
    "NodeBatch",
    "current_context",
    "decode",
    "encode",
    # Context
    "Context",
    # Datatypes
    "ContentRange",
    "Digest",
    "MediaType",
    "Product",
    "Products",
    "ValueObjectMapper",
    # Errors
    "CodecError",
    "EntrySizeViolation",
    "InvalidInput",
    "MalformedInput",
    "ReaderFailedError",
    "UnsupportedSpecVersion",
    "UnsupportedType",
    # Model
    "BdioMetadata",
    "Node",
    "NodeBuilder",
    "annotation_node",
    "component_node",
    "container_layer_node",
    "container_node",
    "dependency_node",
    "file_node",
    "license_node",
    "mint_skolem_identifier",
    "note_node",
    "project_node",
    "repository_node",
    "vulnerability_node",
    # Options
    "BdioOptions",
    "OptionsValidationError",
    "OptionsValidator",
    # Partitioning
    "Partitioner",
    "estimate_weight",
    "partition",
    # Reader
    "BdioReader",
    "ReaderState",
    "scan_for_spec_version",
    # Specification
    "Specification",
    "TermDefinition",
    "for_version",
    "latest",
    # Identifiers
    "Identifier",
    "JsonLdKeyword",
    "get_registry",
    "intern",
    # Vocabulary
    "BdioClass",
    "Container",
    "ContentType",
    "ContextVersion",
    "Datatype",
    "FileSystemType",
]
