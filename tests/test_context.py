"""Tests for the linked-data context."""
from datetime import datetime, timezone

import pytest

from bdio.context import Context, version_of
from bdio.datatype import Digest, Products
from bdio.errors import InvalidInput, UnsupportedSpecVersion
from bdio.model import (
    BdioMetadata,
    Node,
    NodeBuilder,
    annotation_node,
    component_node,
    file_node,
    project_node,
)
from bdio.specification import TermDefinition
from bdio.terms import intern
from bdio.vocabulary import (
    BILL_OF_MATERIALS,
    LEGACY_VOCAB,
    PROPERTIES,
    SPEC_VERSION,
    VOCAB,
    BdioClass,
    Datatype,
    FileSystemType,
    external_identifier_value,
)


def _prefixes(*pairs):
    return {alias: TermDefinition.for_value(iri) for alias, iri in pairs}


# ========== Construction Tests ==========

class TestConstruction:
    """Tests for building contexts."""

    def test_base(self):
        context = Context(base="http://example.com/docs/")
        assert context.base == "http://example.com/docs/"

    def test_no_base(self):
        assert Context().base is None
        assert Context(base="").base is None

    @pytest.mark.parametrize("base", ["relative/path", "urn:uuid:123", "/absolute/path"])
    def test_rejects_non_hierarchical_base(self, base):
        with pytest.raises(ValueError, match="base"):
            Context(base=base)

    def test_for_writing(self):
        context = Context.for_writing()
        assert context.spec_version == "2.0.0"
        assert context.vocab == VOCAB
        assert Context.for_writing("1.1.0").spec_version == "1.1.0"

    def test_for_reading(self):
        context = Context.for_reading("1.0.0", base="http://example.com/")
        assert context.spec_version == "1.0.0"
        assert context.base == "http://example.com/"
        assert context.vocab == LEGACY_VOCAB

    def test_for_reading_unknown(self):
        with pytest.raises(UnsupportedSpecVersion):
            Context.for_reading("0.0.1")

    def test_term_and_type(self, latest_context):
        assert latest_context.term("path") is intern(PROPERTIES["path"].iri)
        assert latest_context.type("File") is intern(BdioClass.FILE.iri)


# ========== IRI Tests ==========

class TestExpandIri:
    """Tests for IRI expansion."""

    def test_keywords_pass_through(self, latest_context):
        assert latest_context.expand_iri("@id") == "@id"

    def test_alias(self, latest_context):
        assert latest_context.expand_iri("byteCount") == VOCAB + "hasByteCount"

    def test_prefix(self, baseline_context):
        assert baseline_context.expand_iri("spdx:fileName") == "http://spdx.org/rdf/terms#fileName"

    def test_absolute_iri_unchanged(self, latest_context):
        assert latest_context.expand_iri("http://example.com/x") == "http://example.com/x"
        assert latest_context.expand_iri("urn:uuid:1", relative=True) == "urn:uuid:1"

    def test_relative_against_base(self):
        context = Context(base="http://example.com/docs/", vocab=VOCAB)
        assert context.expand_iri("files/1", relative=True) == "http://example.com/docs/files/1"

    def test_relative_without_base(self):
        assert Context(vocab=VOCAB).expand_iri("files/1", relative=True) == "files/1"

    def test_vocab(self):
        assert Context(vocab=VOCAB).expand_iri("Custom") == VOCAB + "Custom"
        assert Context().expand_iri("Custom") == "Custom"


class TestCompactIri:
    """Tests for IRI compaction."""

    def test_exact(self, latest_context):
        assert latest_context.compact_iri(VOCAB + "hasPath") == "path"

    def test_longest_prefix_wins(self):
        """Test the longest matching prefix is chosen regardless of order."""
        context = Context(definitions=_prefixes(("a", "http://x.com/a"), ("ab", "http://x.com/ab")))
        assert context.compact_iri("http://x.com/ab/c") == "ab:/c"
        reversed_context = Context(definitions=_prefixes(("ab", "http://x.com/ab"), ("a", "http://x.com/a")))
        assert reversed_context.compact_iri("http://x.com/ab/c") == "ab:/c"

    def test_prefix_tie_uses_registration_order(self):
        context = Context(definitions=_prefixes(("one", "http://x.com/"), ("two", "http://x.com/")))
        assert context.compact_iri("http://x.com/y") == "one:y"
        assert context.compact_iri("http://x.com/") == "one"

    def test_vocab_stripped(self):
        context = Context(vocab=VOCAB)
        assert context.compact_iri(VOCAB + "Custom") == "Custom"
        assert context.compact_iri(VOCAB + "Custom", vocab=False) == VOCAB + "Custom"

    def test_unresolvable_unchanged(self, latest_context):
        assert latest_context.compact_iri("http://other.example/x") == "http://other.example/x"

    def test_compact_expand(self, baseline_context):
        iri = "http://spdx.org/rdf/terms#somethingNew"
        compacted = baseline_context.compact_iri(iri)
        assert compacted == "spdx:somethingNew"
        assert baseline_context.expand_iri(compacted) == iri


# ========== Expansion Tests ==========

class TestExpand:
    """Tests for node expansion."""

    def test_expand_file(self, latest_context, sample_file):
        expanded = latest_context.expand(sample_file)
        assert expanded == {
            "@id": "http://example.com/files/1",
            "@type": [BdioClass.FILE.iri],
            VOCAB + "hasPath": "./foo/bar",
            VOCAB + "hasByteCount": {"@type": Datatype.LONG.iri, "@value": 10},
        }

    def test_expand_relative_id(self, sample_file):
        context = Context.for_writing(base="http://example.com/base/")
        node = sample_file.with_id("files/2")
        assert context.expand(node)["@id"] == "http://example.com/base/files/2"

    def test_expand_reference(self, latest_context):
        node = file_node("http://example.com/files/2").put("parent", "http://example.com/files/1").build()
        expanded = latest_context.expand(node)
        assert expanded[VOCAB + "hasParent"] == {"@id": "http://example.com/files/1"}

    def test_expand_embedded_merges_types(self, latest_context):
        """Test embedded nodes carry the types declared by their term."""
        note = Node(data={intern(PROPERTIES["comment"].iri): "hello"})
        node = file_node("http://example.com/files/1").put("description", [note]).build()
        expanded = latest_context.expand(node)
        assert expanded[VOCAB + "hasDescription"] == [
            {"@type": [BdioClass.ANNOTATION.iri], VOCAB + "hasComment": "hello"}
        ]

    def test_expand_enum_value(self, latest_context):
        node = file_node("http://example.com/f").put("fileSystemType", FileSystemType.REGULAR).build()
        assert latest_context.expand(node)[VOCAB + "hasFileSystemType"] == "regular"

    def test_expand_invalid_value_is_located(self, latest_context):
        """Test datatype failures name the term and node."""
        node = file_node("http://example.com/files/1").put("byteCount", "ten").build()
        with pytest.raises(InvalidInput) as exc_info:
            latest_context.expand(node)
        assert exc_info.value.term == "byteCount"
        assert exc_info.value.node_id == "http://example.com/files/1"


# ========== Compaction Tests ==========

class TestCompact:
    """Tests for node compaction."""

    def test_compact_file(self, latest_context, sample_file):
        assert latest_context.compact(sample_file) == {
            "@id": "http://example.com/files/1",
            "@type": "File",
            "path": "./foo/bar",
            "byteCount": 10,
        }

    def test_singleton_collection_unwrapped(self, latest_context):
        node = file_node("http://example.com/f").put("fingerprint", [Digest("sha1", "abc")]).build()
        assert latest_context.compact(node)["fingerprint"] == "sha1:abc"

    def test_empty_collection_omitted(self, latest_context):
        node = file_node("http://example.com/f").put("fingerprint", []).build()
        assert "fingerprint" not in latest_context.compact(node)

    def test_collection_kept(self, latest_context):
        digests = [Digest("sha1", "abc"), Digest("md5", "def")]
        node = file_node("http://example.com/f").put("fingerprint", digests).build()
        assert latest_context.compact(node)["fingerprint"] == ["sha1:abc", "md5:def"]

    def test_set_drops_duplicates(self, latest_context):
        node = project_node("http://example.com/p").put(
            "homepage", ["http://a.example", "http://b.example", "http://a.example"]
        ).build()
        assert latest_context.compact(node)["homepage"] == ["http://a.example", "http://b.example"]

    def test_embedded_types_omitted(self, latest_context):
        note = annotation_node().put("comment", "hello").build()
        node = file_node("http://example.com/f").put("description", [note]).build()
        assert latest_context.compact(node)["description"] == {"comment": "hello"}

    def test_unknown_term_keeps_value_object(self, latest_context):
        """Test values with a datatype the term does not declare stay wrapped."""
        node = file_node("http://example.com/f").put("http://other.example/seen", Digest("sha1", "abc")).build()
        compacted = latest_context.compact(node)
        assert compacted["http://other.example/seen"] == {"@type": Datatype.DIGEST.iri, "@value": "sha1:abc"}

    def test_reference_compacted(self):
        context = Context.for_writing("1.1.0")
        node = Node(
            "http://example.com/c",
            data={intern(LEGACY_VOCAB + "externalSystemTypeId"): external_identifier_value("maven")},
        )
        assert context.compact(node)["externalSystemTypeId"] == "maven"


# ========== Round Trip Tests ==========

class TestRoundTrip:
    """Tests for expand_to_node(compact(n)) == n."""

    @pytest.fixture
    def nodes(self):
        return [
            file_node("http://example.com/files/1")
            .put("path", "./foo/bar")
            .put("byteCount", 10)
            .put("fingerprint", [Digest("sha1", "abc"), Digest("md5", "def")])
            .put("lastModifiedDateTime", datetime(2020, 1, 1, tzinfo=timezone.utc))
            .put("parent", "http://example.com/files/0")
            .put("description", [annotation_node().put("comment", "hello").build()])
            .build(),
            project_node("http://example.com/projects/1")
            .put("name", "bdio")
            .put("version", "1.0")
            .put("homepage", ["http://a.example"])
            .put("resolver", Products.parse("maven/3.6 (linux)"))
            .build(),
            NodeBuilder("http://example.com/custom", ["http://other.example/Thing"])
            .put("http://other.example/count", 3)
            .put("http://other.example/tags", ["a", "b"])
            .build(),
            file_node("http://example.com/files/foo").put("path", "./foo/bar").put("size", 10).build(),
            component_node("http://example.com/c").put("buildTool", "make").build(),
        ]

    def test_round_trip(self, latest_context, nodes):
        for node in nodes:
            assert latest_context.expand_to_node(latest_context.compact(node)) == node

    def test_round_trip_with_base(self, nodes):
        context = Context.for_writing(base="http://example.com/")
        for node in nodes:
            assert context.expand_to_node(context.compact(node)) == node

    def test_round_trip_metadata(self, latest_context):
        metadata = BdioMetadata(
            id="urn:uuid:1",
            name="scan",
            creation_date_time=datetime(2020, 1, 1, tzinfo=timezone.utc),
            publisher=Products.parse("bdio/0.1.0 (test)"),
        )
        node = metadata.as_node(latest_context)
        assert latest_context.expand_to_node(latest_context.compact(node)) == node


# ========== Wire Decoding Tests ==========

class TestExpandToNode:
    """Tests for decoding wire maps."""

    def test_decode_typed_by_definition(self, latest_context):
        node = latest_context.expand_to_node({"@id": "foo", "@type": "File", "byteCount": "10"})
        assert node.get("byteCount") == 10
        assert node.types == frozenset({intern(BdioClass.FILE.iri)})

    def test_decode_value_object(self, latest_context):
        node = latest_context.expand_to_node({
            "@id": "foo",
            "fingerprint": {"@type": Datatype.DIGEST.iri, "@value": "sha1:abc"},
        })
        assert node.get("fingerprint") == [Digest("sha1", "abc")]

    def test_decode_skips_keywords(self, latest_context):
        node = latest_context.expand_to_node({"@id": "foo", "@context": {}, "path": "x"})
        assert list(node.data) == [intern(PROPERTIES["path"].iri)]

    def test_decode_list_keyword(self, latest_context):
        node = latest_context.expand_to_node({"@id": "foo", "homepage": {"@set": ["a", "b"]}})
        assert node.get("homepage") == ["a", "b"]

    def test_decode_invalid_value_is_located(self, latest_context):
        with pytest.raises(InvalidInput) as exc_info:
            latest_context.expand_to_node({"@id": "foo", "fingerprint": "nope"})
        assert exc_info.value.term == "fingerprint"
        assert exc_info.value.node_id == "foo"

    def test_legacy_terms_migrate(self):
        """Test legacy documents decode to current terms."""
        context = Context.for_reading("1.0.0")
        node = context.expand_to_node({
            "@id": "http://example.com/files/1",
            "size": 10,
            "externalSystemTypeId": "BD-Suite",
        })
        assert node.get("byteCount") == 10
        assert node.get(LEGACY_VOCAB + "externalSystemTypeId") == external_identifier_value("bdsuite")


# ========== Versioning Tests ==========

class TestVersioning:
    """Tests for version detection and migration."""

    def test_version_of(self):
        node = NodeBuilder("urn:uuid:1", [BILL_OF_MATERIALS]).put(SPEC_VERSION, "1.1.0").build()
        assert version_of(node) == "1.1.0"
        assert version_of(NodeBuilder("urn:uuid:1", [BILL_OF_MATERIALS]).build()) is None
        assert version_of(file_node("f").put(SPEC_VERSION, "1.1.0").build()) is None

    def test_migrate_for(self, baseline_context):
        node = NodeBuilder("urn:uuid:1", [BILL_OF_MATERIALS]).put(SPEC_VERSION, "1.1.0").build()
        migrated = baseline_context.migrate_for(node)
        assert migrated.spec_version == "1.1.0"
        assert baseline_context.spec_version == ""
        assert migrated.migrate_for(node) is None


class TestSerialize:
    """Tests for the @context map."""

    def test_serialize_latest(self, latest_context):
        serialized = latest_context.serialize()
        assert serialized["@vocab"] == VOCAB
        assert "@base" not in serialized
        assert serialized["File"] == BdioClass.FILE.iri
        assert serialized["byteCount"] == {"@id": VOCAB + "hasByteCount", "@type": Datatype.LONG.iri}
        assert serialized["parent"] == {"@id": VOCAB + "hasParent", "@type": "@id"}
        assert serialized["size"] == serialized["byteCount"]

    def test_serialize_base(self):
        serialized = Context.for_writing(base="http://example.com/").serialize()
        assert serialized["@base"] == "http://example.com/"

    def test_serialize_uses_prefixes(self, baseline_context):
        """Test datatype IRIs are shortened with the context's own prefixes."""
        serialized = baseline_context.serialize()
        assert serialized["size"] == {"@id": VOCAB + "hasByteCount", "@type": "xsd:long"}
