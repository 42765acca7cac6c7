"""
BDIO vocabulary constants.

The vocabulary is a fixed data table: node classes, object properties
(links between nodes) and data properties (scalar fields), each with the
classes it may appear on (domain), the classes it may point to (range),
its container kind and its datatype. The table is reproduced exactly for
interoperability and is the content of the latest specification.

Older documents use the legacy Black Duck/SPDX/DOAP vocabulary; those IRIs
are declared here as well so every built-in identifier lives in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional

import polars as pl

from bdio.errors import UnsupportedSpecVersion


# =============================================================================
# Namespaces
# =============================================================================

VOCAB = "https://blackducksoftware.github.io/bdio#"
LEGACY_VOCAB = "http://blackducksoftware.com/rdf/terms#"
SPDX = "http://spdx.org/rdf/terms#"
DOAP = "http://usefulinc.com/ns/doap#"
RDFS = "http://www.w3.org/2000/01/rdf-schema#"
XSD = "http://www.w3.org/2001/XMLSchema#"

# The metadata type and version field keep their legacy IRIs in every
# specification so a reader can detect the version under any context.
BILL_OF_MATERIALS = LEGACY_VOCAB + "BillOfMaterials"
SPEC_VERSION = LEGACY_VOCAB + "specVersion"

# Largest serialized entry a conforming reader must accept
MAX_ENTRY_SIZE = 16 * 1024 * 1024

HEADER_ENTRY_NAME = "bdio-header.jsonld"


def data_entry_name(index: int) -> str:
    """Return the archive entry name for an entry index (-1 is the header)."""
    if index < 0:
        return HEADER_ENTRY_NAME
    return f"bdio-entry-{index:02d}.jsonld"


# =============================================================================
# Enumerations
# =============================================================================

class Container(Enum):
    """
    Multiplicity of a term's values.

    SINGLE collapses to the bare value, LIST preserves order and duplicates,
    SET may drop duplicates, UNKNOWN is decided by cardinality at runtime.
    """
    SINGLE = "single"
    LIST = "ordered"
    SET = "unordered"
    UNKNOWN = "unknown"

    @property
    def keyword(self) -> Optional[str]:
        """The JSON-LD @container keyword, if any."""
        if self is Container.LIST:
            return "@list"
        if self is Container.SET:
            return "@set"
        return None

    @classmethod
    def from_keyword(cls, keyword: Optional[str]) -> "Container":
        if keyword == "@list":
            return cls.LIST
        if keyword == "@set":
            return cls.SET
        return cls.UNKNOWN

    def copy_of(self, values: Iterable[Any]) -> list:
        """Copy a collection for this container, dropping duplicates from sets."""
        result = list(values)
        if self is Container.SET:
            unique: list = []
            for value in result:
                if value not in unique:
                    unique.append(value)
            return unique
        return result

    def collect(self, values: list) -> Any:
        """
        Re-collect decoded values according to this container.

        SINGLE keeps the first non-null value, LIST and SET always produce a
        list, UNKNOWN unwraps a one-element list.
        """
        if self is Container.SINGLE:
            return next((v for v in values if v is not None), None)
        if self is Container.LIST or self is Container.SET:
            return self.copy_of(values)
        return values[0] if len(values) == 1 else values


class Datatype(Enum):
    """Built-in datatypes, valued by their IRI ("" for Default)."""
    DEFAULT = ""
    DATE_TIME = XSD + "dateTime"
    DIGEST = VOCAB + "Digest"
    LONG = XSD + "long"
    PRODUCTS = VOCAB + "Products"
    CONTENT_RANGE = VOCAB + "ContentRange"
    CONTENT_TYPE = VOCAB + "ContentType"

    @property
    def iri(self) -> str:
        return self.value

    @classmethod
    def from_iri(cls, iri: Optional[str]) -> Optional["Datatype"]:
        """Look up a datatype by IRI, returning None when it is not built in."""
        for datatype in cls:
            if datatype.value == (iri or ""):
                return datatype
        return None


class BdioClass(Enum):
    """Node classes of the current vocabulary."""
    ANNOTATION = "Annotation"
    COMPONENT = "Component"
    CONTAINER = "Container"
    CONTAINER_LAYER = "ContainerLayer"
    DEPENDENCY = "Dependency"
    FILE = "File"
    FILE_COLLECTION = "FileCollection"
    LICENSE = "License"
    LICENSE_GROUP = "LicenseGroup"
    NOTE = "Note"
    PROJECT = "Project"
    REPOSITORY = "Repository"
    VULNERABILITY = "Vulnerability"

    @property
    def iri(self) -> str:
        return VOCAB + self.value

    @property
    def embedded(self) -> bool:
        """Embedded classes are written inline inside their parent node."""
        return self in _EMBEDDED_CLASSES

    @classmethod
    def from_iri(cls, iri: str) -> Optional["BdioClass"]:
        if iri.startswith(VOCAB):
            try:
                return cls(iri[len(VOCAB):])
            except ValueError:
                return None
        return None


_EMBEDDED_CLASSES = frozenset({
    BdioClass.ANNOTATION,
    BdioClass.DEPENDENCY,
    BdioClass.LICENSE_GROUP,
    BdioClass.NOTE,
})


class FileSystemType(Enum):
    """Values of the fileSystemType data property."""
    REGULAR = "regular"
    REGULAR_TEXT = "regular/text"
    DIRECTORY = "directory"
    DIRECTORY_ARCHIVE = "directory/archive"
    SYMLINK = "symlink"
    OTHER_DEVICE_BLOCK = "other/device/block"
    OTHER_DEVICE_CHARACTER = "other/device/character"
    OTHER_DOOR = "other/door"
    OTHER_PIPE = "other/pipe"
    OTHER_SOCKET = "other/socket"
    OTHER_WHITEOUT = "other/whiteout"


class ContextVersion(Enum):
    """Published JSON-LD context versions."""
    V1_0 = "1.0.0"
    V1_1 = "1.1.0"
    V1_1_1 = "1.1.1"
    V2_0 = "2.0.0"

    @classmethod
    def default(cls) -> "ContextVersion":
        return cls.V2_0

    @classmethod
    def for_spec_version(cls, version: Optional[str]) -> "ContextVersion":
        """
        Map a specification version string to its context.

        Raises:
            UnsupportedSpecVersion: If the version is not recognized
        """
        if not version:
            return cls.V1_0
        for context in cls:
            if context.value == version:
                return context
        raise UnsupportedSpecVersion(version)


class ContentType(Enum):
    """Media types a BDIO document can be stored as."""
    JSONLD = ("application/ld+json", "jsonld")
    JSON = ("application/json", "json")
    BDIO_JSON = ("application/vnd.blackducksoftware.bdio+json", "json")
    BDIO_ZIP = ("application/vnd.blackducksoftware.bdio+zip", "bdio")

    @property
    def media_type(self) -> str:
        return self.value[0]

    @property
    def extension(self) -> str:
        return self.value[1]

    def default_context(self) -> Optional[ContextVersion]:
        """
        Return the context implied by this content type.

        JSON-LD and ZIP documents carry their own context; BDIO JSON implies the
        default context; plain JSON leaves the context undefined and is rejected.
        """
        if self is ContentType.JSON:
            raise ValueError("the JSON content type leaves the expansion context undefined")
        if self is ContentType.BDIO_JSON:
            return ContextVersion.default()
        return None

    @classmethod
    def for_media_type(cls, media_type: str) -> "ContentType":
        for content_type in cls:
            if content_type.media_type == media_type:
                return content_type
        raise ValueError(f"unknown content type: {media_type}")


# =============================================================================
# Property table
# =============================================================================

class PropertyKind(Enum):
    OBJECT = "object"
    DATA = "data"


@dataclass(frozen=True)
class PropertyDefinition:
    """
    One row of the vocabulary table.

    Attributes:
        name: Short name used in compacted documents
        iri: Fully qualified term IRI
        kind: Object (link) or data (scalar) property
        container: Multiplicity of the values
        domain: Classes allowed to carry this property
        range: Classes an object property may point to
        datatype: Datatype of a data property
        metadata: True if the property may appear on the document metadata
    """
    name: str
    iri: str
    kind: PropertyKind
    container: Container
    domain: tuple[BdioClass, ...] = ()
    range: tuple[BdioClass, ...] = ()
    datatype: Datatype = Datatype.DEFAULT
    metadata: bool = False

    @property
    def embedded(self) -> bool:
        """True if every class in the range is embedded."""
        return bool(self.range) and all(c.embedded for c in self.range)

    def allows(self, class_iris: Iterable[str]) -> bool:
        """Check if a node with the given types may carry this property."""
        allowed = {c.iri for c in self.domain}
        if self.metadata:
            allowed.add(BILL_OF_MATERIALS)
        return any(iri in allowed for iri in class_iris)


def _obj(name, container, domain, range_, iri=None):
    return PropertyDefinition(
        name=name,
        iri=iri or VOCAB + "has" + name[0].upper() + name[1:],
        kind=PropertyKind.OBJECT,
        container=container,
        domain=tuple(domain),
        range=tuple(range_),
    )


def _data(name, datatype, container, domain=(), metadata=False):
    return PropertyDefinition(
        name=name,
        iri=VOCAB + "has" + name[0].upper() + name[1:],
        kind=PropertyKind.DATA,
        container=container,
        domain=tuple(domain),
        datatype=datatype,
        metadata=metadata,
    )


C = BdioClass
_LICENSED = (C.COMPONENT, C.CONTAINER, C.DEPENDENCY, C.LICENSE_GROUP, C.PROJECT)
_DESCRIBED = (
    C.COMPONENT, C.CONTAINER, C.CONTAINER_LAYER, C.DEPENDENCY, C.FILE, C.FILE_COLLECTION,
    C.LICENSE, C.LICENSE_GROUP, C.PROJECT, C.REPOSITORY, C.VULNERABILITY,
)
_IDENTIFIED = (C.COMPONENT, C.LICENSE, C.PROJECT, C.VULNERABILITY)

OBJECT_PROPERTIES: tuple[PropertyDefinition, ...] = (
    _obj("affected", Container.SET, [C.VULNERABILITY], [C.COMPONENT, C.PROJECT]),
    _obj("base", Container.SET, [C.CONTAINER, C.FILE_COLLECTION, C.PROJECT, C.REPOSITORY], [C.FILE]),
    _obj("canonical", Container.SINGLE,
         [C.COMPONENT, C.CONTAINER, C.LICENSE, C.PROJECT, C.REPOSITORY, C.VULNERABILITY], []),
    _obj("containerLayer", Container.LIST, [C.CONTAINER], [C.CONTAINER_LAYER]),
    _obj("declaredBy", Container.SET, [C.DEPENDENCY], [C.FILE], iri=VOCAB + "declaredBy"),
    _obj("dependency", Container.SET,
         [C.COMPONENT, C.CONTAINER, C.FILE_COLLECTION, C.PROJECT, C.REPOSITORY], [C.DEPENDENCY]),
    _obj("dependsOn", Container.SET, [C.DEPENDENCY], [C.COMPONENT], iri=VOCAB + "dependsOn"),
    _obj("description", Container.SET, _DESCRIBED, [C.ANNOTATION]),
    _obj("evidence", Container.SET, [C.DEPENDENCY], [C.FILE]),
    _obj("license", Container.SINGLE, _LICENSED, [C.LICENSE, C.LICENSE_GROUP]),
    _obj("licenseConjunctive", Container.LIST, _LICENSED, [C.LICENSE, C.LICENSE_GROUP],
         iri=VOCAB + "haslicenseConjunctive"),
    _obj("licenseDisjunctive", Container.LIST, _LICENSED, [C.LICENSE, C.LICENSE_GROUP]),
    _obj("licenseException", Container.SINGLE, [C.LICENSE], [C.LICENSE]),
    _obj("licenseOrLater", Container.SINGLE, _LICENSED, [C.LICENSE]),
    _obj("note", Container.LIST, [C.FILE], [C.NOTE]),
    _obj("parent", Container.SINGLE, [C.FILE], [C.FILE]),
    _obj("previousVersion", Container.SINGLE, [C.PROJECT], [C.PROJECT]),
    _obj("subproject", Container.SET, [C.PROJECT], [C.PROJECT]),
)

DATA_PROPERTIES: tuple[PropertyDefinition, ...] = (
    _data("architecture", Datatype.DEFAULT, Container.SINGLE, [C.CONTAINER]),
    _data("buildDetails", Datatype.DEFAULT, Container.SINGLE, metadata=True),
    _data("buildNumber", Datatype.DEFAULT, Container.SINGLE, metadata=True),
    _data("byteCount", Datatype.LONG, Container.SINGLE, [C.CONTAINER_LAYER, C.FILE]),
    _data("command", Datatype.DEFAULT, Container.SINGLE, [C.CONTAINER_LAYER]),
    _data("comment", Datatype.DEFAULT, Container.SINGLE, [C.ANNOTATION]),
    _data("config", Datatype.DEFAULT, Container.SINGLE, [C.CONTAINER]),
    _data("contentType", Datatype.CONTENT_TYPE, Container.SINGLE, [C.FILE]),
    _data("context", Datatype.DEFAULT, Container.SINGLE, _IDENTIFIED),
    _data("creationDateTime", Datatype.DATE_TIME, Container.SINGLE,
          [C.ANNOTATION, C.CONTAINER, C.CONTAINER_LAYER, C.FILE, C.VULNERABILITY], metadata=True),
    _data("creator", Datatype.DEFAULT, Container.SINGLE, [C.ANNOTATION], metadata=True),
    _data("encoding", Datatype.DEFAULT, Container.SINGLE, [C.FILE]),
    _data("fileSystemType", Datatype.DEFAULT, Container.SINGLE, [C.FILE]),
    _data("fingerprint", Datatype.DIGEST, Container.SET, [C.FILE]),
    _data("homepage", Datatype.DEFAULT, Container.SET, _IDENTIFIED),
    _data("identifier", Datatype.DEFAULT, Container.SINGLE, _IDENTIFIED),
    _data("image", Datatype.DEFAULT, Container.SINGLE, [C.CONTAINER]),
    _data("imageTag", Datatype.DEFAULT, Container.SET, [C.CONTAINER]),
    _data("lastModifiedDateTime", Datatype.DATE_TIME, Container.SINGLE, [C.FILE, C.VULNERABILITY]),
    _data("layer", Datatype.DEFAULT, Container.SINGLE, [C.CONTAINER_LAYER]),
    _data("linkPath", Datatype.DEFAULT, Container.SINGLE, [C.FILE]),
    _data("name", Datatype.DEFAULT, Container.SINGLE,
          [C.COMPONENT, C.LICENSE, C.PROJECT, C.REPOSITORY, C.VULNERABILITY], metadata=True),
    _data("namespace", Datatype.DEFAULT, Container.SINGLE,
          [C.COMPONENT, C.CONTAINER, C.DEPENDENCY, C.LICENSE, C.PROJECT, C.REPOSITORY, C.VULNERABILITY]),
    _data("path", Datatype.DEFAULT, Container.SINGLE, [C.FILE]),
    _data("platform", Datatype.PRODUCTS, Container.SINGLE,
          [C.COMPONENT, C.CONTAINER, C.FILE, C.PROJECT, C.VULNERABILITY], metadata=True),
    _data("publisher", Datatype.PRODUCTS, Container.SINGLE, metadata=True),
    _data("range", Datatype.CONTENT_RANGE, Container.SET, [C.DEPENDENCY, C.NOTE]),
    _data("requestedVersion", Datatype.DEFAULT, Container.SINGLE, [C.COMPONENT]),
    _data("resolver", Datatype.PRODUCTS, Container.SINGLE, _IDENTIFIED),
    _data("rights", Datatype.DEFAULT, Container.SINGLE, [C.NOTE]),
    _data("scope", Datatype.DEFAULT, Container.SINGLE, [C.DEPENDENCY]),
    _data("sourceBranch", Datatype.DEFAULT, Container.SINGLE, metadata=True),
    _data("sourceRepository", Datatype.DEFAULT, Container.SINGLE, metadata=True),
    _data("sourceRevision", Datatype.DEFAULT, Container.SINGLE, metadata=True),
    _data("sourceTag", Datatype.DEFAULT, Container.SINGLE, metadata=True),
    _data("vendor", Datatype.DEFAULT, Container.SINGLE, [C.COMPONENT, C.PROJECT]),
    _data("version", Datatype.DEFAULT, Container.SINGLE, [C.COMPONENT, C.PROJECT]),
)
del C

PROPERTIES: dict[str, PropertyDefinition] = {
    p.name: p for p in OBJECT_PROPERTIES + DATA_PROPERTIES
}

# Additional short names for properties; the property name stays the compacted form
PROPERTY_ALIASES: dict[str, str] = {
    "size": "byteCount",
}


def property_for_name(name: str) -> Optional[PropertyDefinition]:
    """Look up a property of the current vocabulary by name or alias."""
    return PROPERTIES.get(PROPERTY_ALIASES.get(name, name))


def property_for_iri(iri: str) -> Optional[PropertyDefinition]:
    """Look up a property of the current vocabulary by its term IRI."""
    for prop in PROPERTIES.values():
        if prop.iri == iri:
            return prop
    return None


# =============================================================================
# Legacy vocabulary (specifications before 2.0.0)
# =============================================================================

class LegacyTerm:
    """Term and value IRIs used by legacy specifications."""
    SIZE = LEGACY_VOCAB + "size"
    EXTERNAL_IDENTIFIER = LEGACY_VOCAB + "externalIdentifier"
    EXTERNAL_SYSTEM_TYPE_ID = LEGACY_VOCAB + "externalSystemTypeId"
    MATCH_DETAIL = LEGACY_VOCAB + "matchDetail"
    MATCH_TYPE = LEGACY_VOCAB + "matchType"

    DOAP_NAME = DOAP + "name"
    DOAP_HOMEPAGE = DOAP + "homepage"
    DOAP_REVISION = DOAP + "revision"
    DOAP_LICENSE = DOAP + "license"

    SPDX_FILE_NAME = SPDX + "fileName"
    SPDX_FILE_TYPE = SPDX + "fileType"
    SPDX_CHECKSUM_VALUE = SPDX + "checksumValue"
    SPDX_CHECKSUM = SPDX + "checksum"
    SPDX_ALGORITHM = SPDX + "algorithm"
    SPDX_ARTIFACT_OF = SPDX + "artifactOf"
    SPDX_LICENSE_CONCLUDED = SPDX + "licenseConcluded"
    SPDX_CREATION_INFO = SPDX + "creationInfo"
    SPDX_RELATIONSHIP_TYPE = SPDX + "relationshipType"
    SPDX_RELATIONSHIP = SPDX + "relationship"
    SPDX_RELATED_ELEMENT = SPDX + "relatedSpdxElement"


class LegacyType:
    """Class IRIs used by legacy specifications."""
    BILL_OF_MATERIALS = BILL_OF_MATERIALS
    COMPONENT = LEGACY_VOCAB + "Component"
    FILE = LEGACY_VOCAB + "File"
    LICENSE = LEGACY_VOCAB + "License"
    PROJECT = LEGACY_VOCAB + "Project"
    VULNERABILITY = LEGACY_VOCAB + "Vulnerability"
    EXTERNAL_IDENTIFIER = LEGACY_VOCAB + "ExternalIdentifier"
    MATCH_DETAIL = LEGACY_VOCAB + "MatchDetail"
    SPDX_CHECKSUM = SPDX + "Checksum"
    SPDX_CREATION_INFO = SPDX + "CreationInfo"
    SPDX_RELATIONSHIP = SPDX + "Relationship"

    TOP_LEVEL = (BILL_OF_MATERIALS, COMPONENT, FILE, LICENSE, PROJECT, VULNERABILITY)


def external_identifier_value(system: str) -> str:
    """IRI of a legacy external identifier system value, e.g. 'maven'."""
    return LEGACY_VOCAB + "externalIdentifier_" + system


# =============================================================================
# Tooling
# =============================================================================

def builtin_iris() -> Iterator[str]:
    """Yield every built-in term and type IRI for preloading the registry."""
    yield BILL_OF_MATERIALS
    yield SPEC_VERSION
    for cls in BdioClass:
        yield cls.iri
    for prop in PROPERTIES.values():
        yield prop.iri
    for holder in (LegacyTerm, LegacyType):
        for key, value in vars(holder).items():
            if not key.startswith("_") and isinstance(value, str):
                yield value


def vocabulary_table() -> pl.DataFrame:
    """
    Export the property table as a Polars DataFrame.

    One row per property with its kind, IRI, comma separated domain and
    range class names, container and datatype IRI.
    """
    rows = []
    for prop in PROPERTIES.values():
        domain = [c.value for c in prop.domain]
        if prop.metadata:
            domain.append("@metadata")
        rows.append({
            "term": prop.name,
            "kind": prop.kind.value,
            "iri": prop.iri,
            "domain": ",".join(domain),
            "range": ",".join(c.value for c in prop.range),
            "container": prop.container.value,
            "datatype": prop.datatype.iri,
        })
    return pl.DataFrame(rows)
