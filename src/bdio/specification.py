"""
Versioned Specification registry.

Each Specification is a fixed table mapping short names (aliases) to
TermDefinitions for one revision of the format. Older revisions are kept so
documents written against them can still be read: `import_definitions()`
reconciles an old table with the latest one, renaming and remapping terms
that changed meaning between releases.

Versions, oldest first:
- "" (baseline): legacy Black Duck/SPDX/DOAP vocabulary
- "1.0.0": identical to the baseline, introduced the version field
- "1.1.0": relationships, external identifier aliases, "licence" typo fix
- "1.1.1": identical to 1.1.0
- "2.0.0": the current vocabulary table
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from bdio.errors import UnsupportedSpecVersion
from bdio.terms import Identifier, JsonLdKeyword, intern
from bdio.vocabulary import (
    BILL_OF_MATERIALS,
    DATA_PROPERTIES,
    DOAP,
    LEGACY_VOCAB,
    OBJECT_PROPERTIES,
    PROPERTIES,
    PROPERTY_ALIASES,
    RDFS,
    SPDX,
    SPEC_VERSION,
    VOCAB,
    XSD,
    BdioClass,
    Container,
    Datatype,
    LegacyTerm,
    LegacyType,
    PropertyDefinition,
    external_identifier_value,
)


# =============================================================================
# Term Definitions
# =============================================================================

@dataclass(frozen=True)
class TermDefinition:
    """
    Meaning of a short name within one specification version.

    Attributes:
        term: Interned IRI the short name expands to
        types: Declared types; JsonLdKeyword.ID marks identifier-valued terms,
            class identifiers mark embedded node values
        container: Multiplicity of values
        datatype: Datatype of scalar values
    """
    term: Identifier
    types: frozenset = field(default_factory=frozenset)
    container: Container = Container.UNKNOWN
    datatype: Datatype = Datatype.DEFAULT

    @property
    def is_reference(self) -> bool:
        """True if values of this term are node identifiers."""
        return JsonLdKeyword.ID in self.types

    @property
    def class_types(self) -> List[Identifier]:
        """Declared types other than keywords, in a stable order."""
        return sorted((t for t in self.types if isinstance(t, Identifier)), key=str)

    @classmethod
    def for_value(cls, iri: str) -> "TermDefinition":
        """A definition for an enumerated value or prefix with no type information."""
        return cls(intern(iri))

    @classmethod
    def for_property(cls, prop: PropertyDefinition) -> "TermDefinition":
        """Build a definition from a row of the vocabulary table."""
        if prop.datatype is not Datatype.DEFAULT:
            types: frozenset = frozenset()
        elif prop.embedded:
            types = frozenset(intern(c.iri) for c in prop.range)
        elif prop.range or prop.name == "canonical":
            types = frozenset({JsonLdKeyword.ID})
        else:
            types = frozenset()
        return cls(intern(prop.iri), types, prop.container, prop.datatype)

    def to_json(self, compact_iri=None) -> Union[str, Dict[str, Any]]:
        """
        Serialize as a JSON-LD context entry.

        Args:
            compact_iri: Optional function used to shorten IRIs

        Returns:
            The bare IRI when there is nothing else to say, else a map
        """
        shorten = compact_iri or (lambda iri: iri)
        type_value = None
        if self.is_reference:
            type_value = JsonLdKeyword.ID.value
        elif self.datatype is not Datatype.DEFAULT:
            type_value = shorten(self.datatype.iri)
        elif len(self.types) == 1:
            type_value = shorten(str(next(iter(self.types))))
        if type_value is None and self.container.keyword is None:
            return self.term.iri
        entry: Dict[str, Any] = {"@id": self.term.iri}
        if type_value is not None:
            entry["@type"] = type_value
        if self.container.keyword is not None:
            entry["@container"] = self.container.keyword
        return entry


def _ref(iri: str, container: Container = Container.UNKNOWN) -> TermDefinition:
    return TermDefinition(intern(iri), frozenset({JsonLdKeyword.ID}), container)


def _typed(iri: str, type_iri: str) -> TermDefinition:
    return TermDefinition(intern(iri), frozenset({intern(type_iri)}))


class TermDefinitionMap:
    """Ordered alias table used while building a specification."""

    def __init__(self, parent: Optional["TermDefinitionMap"] = None):
        self._definitions: Dict[str, TermDefinition] = (
            dict(parent._definitions) if parent else {}
        )

    def add_prefix(self, prefix: str, iri: str) -> "TermDefinitionMap":
        self._definitions[prefix] = TermDefinition.for_value(iri)
        return self

    def add_value(self, alias: str, iri: str) -> "TermDefinitionMap":
        self._definitions[alias] = TermDefinition.for_value(iri)
        return self

    def add(self, alias: str, definition: TermDefinition) -> "TermDefinitionMap":
        self._definitions[alias] = definition
        return self

    def remove(self, alias: str) -> "TermDefinitionMap":
        del self._definitions[alias]
        return self

    def build(self) -> Dict[str, TermDefinition]:
        return dict(self._definitions)


# =============================================================================
# Import support
# =============================================================================

class ImportResolver:
    """
    Reconciles an older specification with the latest one.

    When the IRI behind an alias changed, the new definition wins so decoded
    nodes use current terms. When an alias no longer exists, the old
    definition is kept unless a rename is known.
    """

    def changed(self, alias: str, old: TermDefinition, new: TermDefinition) -> TermDefinition:
        return new

    def removed(self, alias: str, old: TermDefinition) -> TermDefinition:
        return old


class LatestImportResolver(ImportResolver):
    """Maps legacy aliases that were renamed on their way to the current vocabulary."""

    def __init__(self, latest_definitions: Dict[str, TermDefinition]):
        self._latest = latest_definitions

    def removed(self, alias: str, old: TermDefinition) -> TermDefinition:
        if alias == "BD-Hub":
            return TermDefinition.for_value(external_identifier_value("bdhub"))
        if alias == "BD-Suite":
            return TermDefinition.for_value(external_identifier_value("bdsuite"))
        if alias == "licence":
            return self._latest["license"]
        return super().removed(alias, old)


@dataclass(frozen=True)
class ImportFrame:
    """
    Describes the shape of imported data.

    Attributes:
        top_level_types: Types of nodes that appear at the top of the graph
        reference_terms: Terms framed as references instead of embedded objects
    """
    top_level_types: tuple
    reference_terms: frozenset

    def to_frame(self) -> Dict[str, Any]:
        frame: Dict[str, Any] = {"@type": list(self.top_level_types)}
        for term in sorted(self.reference_terms):
            frame[term] = {"@embed": False, "@omitDefault": True}
        return frame


# =============================================================================
# Specification
# =============================================================================

class Specification:
    """One revision of the format."""

    def __init__(
        self,
        version: str,
        vocab: str,
        definitions: Dict[str, TermDefinition],
        frame: ImportFrame,
        resolver: Optional[ImportResolver] = None,
    ):
        self.version = version
        self.vocab = vocab
        self._definitions = definitions
        self._frame = frame
        self._resolver = resolver or ImportResolver()

    @property
    def resolver(self) -> ImportResolver:
        return self._resolver

    def as_term_definitions(self) -> Dict[str, TermDefinition]:
        """Return the alias table of this version."""
        return dict(self._definitions)

    def import_definitions(self) -> Dict[str, TermDefinition]:
        """
        Return the alias table used to read a document of this version.

        Aliases shared with the latest version keep their meaning, aliases
        whose IRI changed are resolved by the latest resolver's `changed`, and
        aliases that no longer exist go through its `removed`. Aliases that
        only exist in the latest version are not added.
        """
        newest = latest()
        if self is newest:
            return self.as_term_definitions()

        result: Dict[str, TermDefinition] = {}
        for alias, old in self._definitions.items():
            new = newest._definitions.get(alias)
            if new is None:
                result[alias] = newest.resolver.removed(alias, old)
            elif new == old:
                result[alias] = old
            else:
                result[alias] = newest.resolver.changed(alias, old, new)
        return result

    def import_frame(self) -> Dict[str, Any]:
        """Return the JSON-LD frame describing imported data for this version."""
        return self._frame.to_frame()

    def __repr__(self) -> str:
        return f"Specification(version={self.version!r}, terms={len(self._definitions)})"


# =============================================================================
# Built-in table
# =============================================================================

def _common(definitions: TermDefinitionMap) -> TermDefinitionMap:
    definitions.add_value("BillOfMaterials", BILL_OF_MATERIALS)
    definitions.add("specVersion", TermDefinition(intern(SPEC_VERSION), container=Container.SINGLE))
    return definitions


def _baseline() -> TermDefinitionMap:
    definitions = _common(TermDefinitionMap())
    definitions.add_prefix("spdx", SPDX)
    definitions.add_prefix("doap", DOAP)
    definitions.add_prefix("rdfs", RDFS)
    definitions.add_prefix("xsd", XSD)

    definitions.add("size", TermDefinition(intern(LegacyTerm.SIZE), datatype=Datatype.LONG))
    definitions.add("externalIdentifier", _typed(LegacyTerm.EXTERNAL_IDENTIFIER, LegacyType.EXTERNAL_IDENTIFIER))
    definitions.add("externalSystemTypeId", _ref(LegacyTerm.EXTERNAL_SYSTEM_TYPE_ID))
    definitions.add("matchDetail", _typed(LegacyTerm.MATCH_DETAIL, LegacyType.MATCH_DETAIL))
    definitions.add("matchType", _ref(LegacyTerm.MATCH_TYPE))

    definitions.add("name", TermDefinition(intern(LegacyTerm.DOAP_NAME)))
    definitions.add("homepage", TermDefinition(intern(LegacyTerm.DOAP_HOMEPAGE)))
    definitions.add("revision", TermDefinition(intern(LegacyTerm.DOAP_REVISION)))
    definitions.add("licence", _ref(LegacyTerm.DOAP_LICENSE))

    definitions.add("fileName", TermDefinition(intern(LegacyTerm.SPDX_FILE_NAME)))
    definitions.add("fileType", _ref(LegacyTerm.SPDX_FILE_TYPE, Container.SET))
    definitions.add("checksumValue", TermDefinition(intern(LegacyTerm.SPDX_CHECKSUM_VALUE)))
    definitions.add("checksum", _typed(LegacyTerm.SPDX_CHECKSUM, LegacyType.SPDX_CHECKSUM))
    definitions.add("algorithm", _ref(LegacyTerm.SPDX_ALGORITHM))
    definitions.add("artifactOf", _ref(LegacyTerm.SPDX_ARTIFACT_OF))
    definitions.add("licenseConcluded", _ref(LegacyTerm.SPDX_LICENSE_CONCLUDED))
    definitions.add("creationInfo", _typed(LegacyTerm.SPDX_CREATION_INFO, LegacyType.SPDX_CREATION_INFO))

    definitions.add_value("BD-Hub", external_identifier_value("BD-Hub"))
    definitions.add_value("BD-Suite", external_identifier_value("BD-Suite"))
    definitions.add_value("DEPENDENCY", LEGACY_VOCAB + "matchType_dependency")
    definitions.add_value("PARTIAL", LEGACY_VOCAB + "matchType_partial")
    definitions.add_value("DIRECTORY", LEGACY_VOCAB + "fileType_directory")
    definitions.add_value("ARCHIVE", SPDX + "fileType_archive")
    definitions.add_value("BINARY", SPDX + "fileType_binary")
    definitions.add_value("OTHER", SPDX + "fileType_other")
    definitions.add_value("SOURCE", SPDX + "fileType_source")
    definitions.add_value("sha1", SPDX + "checksumAlgorithm_sha1")
    definitions.add_value("md5", SPDX + "checksumAlgorithm_md5")
    return definitions


def _v1_1(parent: TermDefinitionMap) -> TermDefinitionMap:
    definitions = TermDefinitionMap(parent)
    definitions.add("relationshipType", _ref(LegacyTerm.SPDX_RELATIONSHIP_TYPE))
    definitions.add("relationship", _typed(LegacyTerm.SPDX_RELATIONSHIP, LegacyType.SPDX_RELATIONSHIP))
    definitions.add("related", _ref(LegacyTerm.SPDX_RELATED_ELEMENT))
    definitions.add_value("DYNAMIC_LINK", SPDX + "relationshipType_dynamicLink")

    for system in ("anaconda", "bower", "cpan", "goget", "maven", "npm", "nuget", "rubygems"):
        definitions.add_value(system, external_identifier_value(system))

    definitions.remove("BD-Hub")
    definitions.add_value("bdhub", external_identifier_value("bdhub"))
    definitions.remove("BD-Suite")
    definitions.add_value("bdsuite", external_identifier_value("bdsuite"))

    definitions.remove("licence")
    definitions.add("license", _ref(LegacyTerm.DOAP_LICENSE))
    return definitions


def _v2() -> TermDefinitionMap:
    definitions = _common(TermDefinitionMap())
    for cls in BdioClass:
        definitions.add_value(cls.value, cls.iri)
    for prop in OBJECT_PROPERTIES + DATA_PROPERTIES:
        definitions.add(prop.name, TermDefinition.for_property(prop))
    # Registered after the properties so compaction keeps the property name
    for alias, name in PROPERTY_ALIASES.items():
        definitions.add(alias, TermDefinition.for_property(PROPERTIES[name]))
    return definitions


def _legacy_frame(extra_references: Iterable[str] = ()) -> ImportFrame:
    references = {
        LegacyTerm.DOAP_LICENSE,
        LegacyTerm.SPDX_ARTIFACT_OF,
        LegacyTerm.SPDX_LICENSE_CONCLUDED,
    }
    references.update(extra_references)
    return ImportFrame(LegacyType.TOP_LEVEL, frozenset(references))


def _v2_frame() -> ImportFrame:
    top_level = (BILL_OF_MATERIALS,) + tuple(c.iri for c in BdioClass if not c.embedded)
    references = frozenset(
        p.iri for p in OBJECT_PROPERTIES if TermDefinition.for_property(p).is_reference
    )
    return ImportFrame(top_level, references)


def _build_versions() -> Dict[str, Specification]:
    baseline = _baseline()
    v1_1 = _v1_1(baseline)
    latest_definitions = _v2().build()

    specifications = [
        Specification("", LEGACY_VOCAB, baseline.build(), _legacy_frame()),
        Specification("1.0.0", LEGACY_VOCAB, TermDefinitionMap(baseline).build(), _legacy_frame()),
        Specification("1.1.0", LEGACY_VOCAB, v1_1.build(),
                      _legacy_frame([LegacyTerm.SPDX_RELATED_ELEMENT])),
        Specification("1.1.1", LEGACY_VOCAB, TermDefinitionMap(v1_1).build(),
                      _legacy_frame([LegacyTerm.SPDX_RELATED_ELEMENT])),
        Specification("2.0.0", VOCAB, latest_definitions, _v2_frame(),
                      LatestImportResolver(latest_definitions)),
    ]
    return {spec.version: spec for spec in specifications}


# Ordered oldest first; the last entry is the latest version
_VERSIONS: Dict[str, Specification] = _build_versions()


def for_version(version: Optional[str]) -> Specification:
    """
    Return the specification for a version string.

    None or "" select the baseline, since documents without a version
    predate the version field.

    Raises:
        UnsupportedSpecVersion: If the version is not known
    """
    try:
        return _VERSIONS[version or ""]
    except KeyError:
        raise UnsupportedSpecVersion(version) from None


def latest() -> Specification:
    """Return the newest specification."""
    return next(reversed(_VERSIONS.values()))


def versions() -> List[str]:
    """Return every known version string, oldest first."""
    return list(_VERSIONS)
