"""Tests for the versioned specification registry."""
import pytest

from bdio import specification
from bdio.errors import UnsupportedSpecVersion
from bdio.specification import (
    ImportResolver,
    TermDefinition,
    for_version,
    latest,
    versions,
)
from bdio.terms import JsonLdKeyword, intern
from bdio.vocabulary import (
    BILL_OF_MATERIALS,
    LEGACY_VOCAB,
    PROPERTIES,
    SPEC_VERSION,
    VOCAB,
    BdioClass,
    Container,
    Datatype,
    LegacyTerm,
    LegacyType,
    external_identifier_value,
)


# ========== Registry Tests ==========

class TestRegistry:
    """Tests for version lookup."""

    def test_versions_in_order(self):
        assert versions() == ["", "1.0.0", "1.1.0", "1.1.1", "2.0.0"]

    def test_latest(self):
        assert latest().version == "2.0.0"
        assert latest().vocab == VOCAB

    def test_missing_version_is_baseline(self):
        """Test that no version selects the oldest specification."""
        assert for_version(None).version == ""
        assert for_version("").version == ""
        assert for_version(None).vocab == LEGACY_VOCAB

    def test_unknown_version(self):
        """Test there is no closest-version fallback."""
        with pytest.raises(UnsupportedSpecVersion) as exc_info:
            for_version("1.2.0")
        assert exc_info.value.version == "1.2.0"

    def test_version_detection_terms_everywhere(self):
        """Test every version can recognize the metadata node."""
        for version in versions():
            definitions = for_version(version).as_term_definitions()
            assert definitions["BillOfMaterials"].term.iri == BILL_OF_MATERIALS
            assert definitions["specVersion"].term.iri == SPEC_VERSION


# ========== Term Definition Tests ==========

class TestTermDefinition:
    """Tests for term definitions."""

    def test_for_data_property(self):
        definition = TermDefinition.for_property(PROPERTIES["byteCount"])
        assert definition.datatype is Datatype.LONG
        assert definition.container is Container.SINGLE
        assert not definition.is_reference

    def test_for_reference_property(self):
        definition = TermDefinition.for_property(PROPERTIES["parent"])
        assert definition.is_reference
        assert JsonLdKeyword.ID in definition.types

    def test_for_embedded_property(self):
        definition = TermDefinition.for_property(PROPERTIES["description"])
        assert not definition.is_reference
        assert definition.class_types == [intern(BdioClass.ANNOTATION.iri)]

    def test_to_json_plain(self):
        assert TermDefinition.for_value(VOCAB + "File").to_json() == VOCAB + "File"

    def test_to_json_typed(self):
        entry = TermDefinition.for_property(PROPERTIES["fingerprint"]).to_json()
        assert entry == {
            "@id": VOCAB + "hasFingerprint",
            "@type": Datatype.DIGEST.iri,
            "@container": "@set",
        }


# ========== Version Content Tests ==========

class TestVersionContent:
    """Tests for the content of each version."""

    def test_baseline_legacy_terms(self):
        definitions = for_version("").as_term_definitions()
        assert definitions["size"].term.iri == LegacyTerm.SIZE
        assert definitions["licence"].is_reference
        assert definitions["BD-Hub"].term.iri == external_identifier_value("BD-Hub")
        assert "license" not in definitions

    def test_1_1_renames(self):
        definitions = for_version("1.1.0").as_term_definitions()
        assert "licence" not in definitions
        assert "license" in definitions
        assert "bdhub" in definitions
        assert "BD-Hub" not in definitions
        assert "maven" in definitions

    def test_copies_match(self):
        """Test the patch releases define the same terms as their parents."""
        assert for_version("1.0.0").as_term_definitions() == for_version("").as_term_definitions()
        assert for_version("1.1.1").as_term_definitions() == for_version("1.1.0").as_term_definitions()

    def test_latest_table(self):
        definitions = latest().as_term_definitions()
        assert definitions["File"].term.iri == BdioClass.FILE.iri
        assert definitions["path"].term.iri == PROPERTIES["path"].iri
        assert len([a for a in definitions if a in PROPERTIES]) == len(PROPERTIES)

    def test_latest_size_alias(self):
        """Test "size" is accepted in 2.0.0 without displacing "byteCount"."""
        definitions = latest().as_term_definitions()
        assert definitions["size"] == definitions["byteCount"]
        assert list(definitions).index("byteCount") < list(definitions).index("size")


# ========== Import Tests ==========

class TestImportDefinitions:
    """Tests for reading older versions under current semantics."""

    def test_latest_imports_itself(self):
        assert latest().import_definitions() == latest().as_term_definitions()

    def test_size_becomes_byte_count(self):
        imported = for_version("1.0.0").import_definitions()
        assert imported["size"] == latest().as_term_definitions()["byteCount"]

    def test_system_aliases_renamed(self):
        imported = for_version("").import_definitions()
        assert imported["BD-Suite"].term.iri == external_identifier_value("bdsuite")
        assert imported["BD-Hub"].term.iri == external_identifier_value("bdhub")

    def test_licence_becomes_license(self):
        imported = for_version("1.0.0").import_definitions()
        assert imported["licence"] == latest().as_term_definitions()["license"]

    def test_latest_only_aliases_not_added(self):
        imported = for_version("1.1.0").import_definitions()
        assert "byteCount" not in imported
        assert "File" not in imported

    def test_removed_alias_kept(self):
        """Test aliases without a known rename keep their old meaning."""
        imported = for_version("1.1.0").import_definitions()
        old = for_version("1.1.0").as_term_definitions()
        assert imported["maven"] == old["maven"]
        assert imported["checksum"] == old["checksum"]

    def test_default_resolver(self):
        resolver = ImportResolver()
        old = TermDefinition.for_value("http://example.com/old")
        new = TermDefinition.for_value("http://example.com/new")
        assert resolver.changed("x", old, new) is new
        assert resolver.removed("x", old) is old


class TestImportFrame:
    """Tests for import frames."""

    def test_legacy_frame(self):
        frame = for_version("").import_frame()
        assert frame["@type"] == list(LegacyType.TOP_LEVEL)
        assert frame[LegacyTerm.DOAP_LICENSE] == {"@embed": False, "@omitDefault": True}

    def test_latest_frame(self):
        frame = specification.latest().import_frame()
        assert BILL_OF_MATERIALS in frame["@type"]
        assert BdioClass.FILE.iri in frame["@type"]
        assert BdioClass.ANNOTATION.iri not in frame["@type"]
        assert PROPERTIES["parent"].iri in frame
