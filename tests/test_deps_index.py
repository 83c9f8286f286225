"""Tests for building the module and product indexes."""

import json
import logging

import pytest

from bazel.labels import BazelLabel
from common.schema_validate import SchemaError
from deps_index.index import DepsIndex, ModuleEntry, ProductEntry, SourceType, product_index_key


def _module(name, label, c99name=None, src_type="swift"):
    return {"name": name, "c99name": c99name or name, "src_type": src_type, "label": label}


def _product(identity, name, labels, ptype="library"):
    return {"identity": identity, "name": name, "type": ptype, "target_labels": labels}


class TestFromJson:
    """Aggregation of the combined index document."""

    def test_empty_document(self):
        index = DepsIndex.from_json('{"modules": [], "products": []}')
        assert dict(index.modules) == {}
        assert dict(index.products) == {}

    def test_module_indexed_under_name_and_c99name(self):
        doc = {
            "modules": [_module("swift-foo", "@swiftpkg_foo//:Sources_swift-foo", c99name="swift_foo")],
            "products": [],
        }
        index = DepsIndex.from_json(json.dumps(doc))
        assert set(index.modules) == {"swift-foo", "swift_foo"}
        assert index.modules["swift-foo"] == index.modules["swift_foo"]
        entry = index.modules["swift_foo"][0]
        assert entry.src_type == SourceType.SWIFT
        assert entry.label == BazelLabel(name="Sources_swift-foo", repository_name="swiftpkg_foo")

    def test_same_name_is_indexed_once_per_module(self):
        doc = {"modules": [_module("Foo", "@a//:Foo")], "products": []}
        index = DepsIndex.from_dict(doc)
        assert len(index.modules["Foo"]) == 1

    def test_shared_names_keep_insertion_order(self):
        doc = {
            "modules": [
                _module("Logging", "@swiftpkg_b//:Logging"),
                _module("Logging", "@swiftpkg_a//:Logging"),
            ],
            "products": [],
        }
        index = DepsIndex.from_dict(doc)
        repos = [m.label.repository_name for m in index.modules["Logging"]]
        assert repos == ["@swiftpkg_b", "@swiftpkg_a"]

    def test_src_type_defaults_to_unknown(self):
        doc = {"modules": [{"name": "Foo", "c99name": "Foo", "label": "@a//:Foo"}], "products": []}
        index = DepsIndex.from_dict(doc)
        assert index.modules["Foo"][0].src_type == SourceType.UNKNOWN

    def test_unrecognized_src_type_fails(self):
        doc = {"modules": [_module("Foo", "@a//:Foo", src_type="fortran")], "products": []}
        with pytest.raises(SchemaError, match="Unrecognized source type"):
            DepsIndex.from_dict(doc)

    def test_bad_label_fails(self):
        doc = {"modules": [_module("Foo", "not a label")], "products": []}
        with pytest.raises(SchemaError, match="Invalid Bazel label"):
            DepsIndex.from_dict(doc)

    def test_canonical_labels_survive_round_trip(self):
        doc = {
            "modules": [
                _module("App", "@@//:App"),
                _module("Logging", "@@swiftpkg_swift_log//:Sources_Logging"),
            ],
            "products": [_product("swift-log", "Logging", ["@@swiftpkg_swift_log//:Sources_Logging"])],
        }
        index = DepsIndex.from_dict(doc)
        assert index.modules["App"][0].label.is_main_repository
        assert DepsIndex.from_dict(index.to_dict()).to_dict() == doc

    def test_missing_modules_key_fails(self):
        with pytest.raises(SchemaError, match="modules"):
            DepsIndex.from_dict({"products": []})

    def test_missing_entry_field_fails(self):
        doc = {"modules": [{"name": "Foo", "label": "@a//:Foo"}], "products": []}
        with pytest.raises(SchemaError, match="c99name"):
            DepsIndex.from_dict(doc)

    def test_invalid_json(self):
        with pytest.raises(SchemaError, match="Invalid dependency index JSON"):
            DepsIndex.from_json("{not json")

    def test_product_key(self):
        doc = {
            "modules": [],
            "products": [_product("Swift-Argument-Parser", "ArgumentParser", ["@a//:AP"])],
        }
        index = DepsIndex.from_dict(doc)
        assert list(index.products) == ["swift-argument-parser|ArgumentParser"]
        assert product_index_key("SWIFT-argument-parser", "ArgumentParser") == \
            "swift-argument-parser|ArgumentParser"

    def test_duplicate_product_last_write_wins(self, caplog):
        doc = {
            "modules": [],
            "products": [
                _product("swift-log", "Logging", ["@first//:Logging"]),
                _product("Swift-Log", "Logging", ["@second//:Logging"]),
            ],
        }
        with caplog.at_level(logging.WARNING, logger="deps_index.index"):
            index = DepsIndex.from_dict(doc)
        product = index.find_product("swift-log", "Logging")
        assert product.identity == "Swift-Log"
        assert [str(lbl) for lbl in product.target_labels] == ["@second//:Logging"]
        assert "Duplicate product" in caplog.text


class TestIndexObjects:
    """Direct construction and read-only behaviour."""

    def test_new_from_entries(self):
        mod = ModuleEntry("Foo", "Foo", SourceType.CLANG, BazelLabel.parse("@a//:Foo"))
        prd = ProductEntry("a", "Foo", "library", (BazelLabel.parse("@a//:Foo"),))
        index = DepsIndex.new(modules=[mod], products=[prd])
        assert index.find_modules("Foo") == (mod,)
        assert index.find_modules("Bar") == ()
        assert index.find_product("A", "Foo") is prd
        assert index.find_product("a", "foo") is None

    def test_tables_are_read_only(self):
        index = DepsIndex.new()
        with pytest.raises(TypeError):
            index.modules["Foo"] = ()
        with pytest.raises(TypeError):
            index.products["k"] = None

    def test_to_dict_round_trip(self):
        doc = {
            "modules": [
                _module("swift-foo", "@swiftpkg_foo//:Foo", c99name="swift_foo"),
                _module("Bar", "@swiftpkg_bar//:Bar", src_type="objc"),
            ],
            "products": [_product("foo", "Foo", ["@swiftpkg_foo//:Foo", "@swiftpkg_foo//:FooKit"])],
        }
        assert DepsIndex.from_dict(doc).to_dict() == doc
