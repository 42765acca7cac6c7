"""Tests for session options and their validation."""
import json
import logging

import pytest

from bdio.options import BdioOptions, OptionsValidationError, OptionsValidator
from bdio.vocabulary import MAX_ENTRY_SIZE, ContentType


# ========== BdioOptions Tests ==========

class TestBdioOptions:
    def test_defaults(self):
        options = BdioOptions()
        assert options.base == ""
        assert options.spec_version is None
        assert options.max_entry_weight == MAX_ENTRY_SIZE
        assert options.max_entry_size == MAX_ENTRY_SIZE
        assert options.expand_context is None
        assert options.strict_domains is False

    def test_to_dict(self):
        options = BdioOptions(base="http://example.com/", max_entry_weight=1024)
        d = options.to_dict()
        assert d["base"] == "http://example.com/"
        assert d["max_entry_weight"] == 1024

    def test_from_dict(self):
        options = BdioOptions.from_dict({"spec_version": "1.1.0", "strict_domains": True})
        assert options.spec_version == "1.1.0"
        assert options.strict_domains is True
        assert options.max_entry_size == MAX_ENTRY_SIZE

    def test_from_dict_ignores_unknown_context(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bdio.options"):
            options = BdioOptions.from_dict({"expand_context": "9.9.9"})
        assert options.expand_context is None
        assert "9.9.9" in caplog.text

    def test_save_load(self, tmp_path):
        path = tmp_path / "bdio.json"
        BdioOptions(base="http://example.com/", expand_context="2.0.0").save(path)

        with open(path) as f:
            assert json.load(f)["expand_context"] == "2.0.0"
        loaded = BdioOptions.load(path)
        assert loaded == BdioOptions(base="http://example.com/", expand_context="2.0.0")

    def test_load_missing_file(self, tmp_path):
        assert BdioOptions.load(tmp_path / "missing.json") == BdioOptions()


# ========== Content Type Tests ==========

class TestContentType:
    def test_bdio_json_implies_default_context(self):
        assert BdioOptions().with_content_type(ContentType.BDIO_JSON).expand_context == "2.0.0"

    def test_self_describing_types(self):
        options = BdioOptions()
        assert options.with_content_type(ContentType.JSONLD) is options
        assert options.with_content_type(ContentType.BDIO_ZIP) is options

    def test_plain_json_rejected(self):
        with pytest.raises(ValueError):
            BdioOptions().with_content_type(ContentType.JSON)


# ========== Context Tests ==========

class TestContexts:
    def test_reading_context(self):
        context = BdioOptions(base="http://example.com/", expand_context="1.1.0").reading_context()
        assert context.spec_version == "1.1.0"
        assert context.base == "http://example.com/"

    def test_reading_context_default_is_baseline(self):
        context = BdioOptions().reading_context()
        assert context.spec_version == ""
        assert context.base is None

    def test_writing_context(self):
        assert BdioOptions().writing_context().spec_version == "2.0.0"
        assert BdioOptions(spec_version="1.0.0").writing_context().spec_version == "1.0.0"


# ========== OptionsValidator Tests ==========

class TestOptionsValidator:
    def test_valid(self):
        assert OptionsValidator.validate(BdioOptions()) == []
        assert OptionsValidator.validate(BdioOptions(base="file:/tmp/scan/")) == []

    def test_relative_base(self):
        errors = OptionsValidator.validate(BdioOptions(base="docs/"))
        assert any("base" in e for e in errors)

    def test_opaque_base(self):
        errors = OptionsValidator.validate(BdioOptions(base="urn:example:docs"))
        assert any("base" in e for e in errors)

    def test_unknown_spec_version(self):
        errors = OptionsValidator.validate(BdioOptions(spec_version="3.0.0"))
        assert any("spec_version" in e for e in errors)

    def test_unknown_expand_context(self):
        errors = OptionsValidator.validate(BdioOptions(expand_context=""))
        assert any("expand_context" in e for e in errors)

    def test_bounds(self):
        errors = OptionsValidator.validate(BdioOptions(max_entry_weight=0, max_entry_size=-1))
        assert len(errors) == 2

    def test_validate_or_raise(self):
        with pytest.raises(OptionsValidationError, match="spec_version"):
            OptionsValidator.validate_or_raise(BdioOptions(spec_version="0.1"))
