"""Tests for the spmbridge command-line entry point."""

import json
import logging
import shutil

import pytest

from constants import Constants, ExitCodes
import spmbridge

INDEX_DOC = {
    "modules": [
        {"name": "Logging", "c99name": "Logging", "src_type": "swift",
         "label": "@swiftpkg_swift_log//:Sources_Logging"},
        {"name": "Logging", "c99name": "Logging", "src_type": "objc",
         "label": "@swiftpkg_other//:Sources_Logging"},
    ],
    "products": [
        {"identity": "swift-log", "name": "Logging", "type": "library",
         "target_labels": ["@swiftpkg_swift_log//:Sources_Logging"]},
    ],
}


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run from an empty directory with an empty HOME so no config is picked up."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def index_path(tmp_path):
    path = tmp_path / "index.json"
    path.write_text(json.dumps(INDEX_DOC), encoding="utf-8")
    return str(path)


def _stdout_json(capsys):
    return json.loads(capsys.readouterr().out)


class TestMergeCommand:

    def test_merge_prints_package(self, capsys, dump_path, desc_path):
        code = spmbridge.main(["merge", "--dump", dump_path, "--describe", desc_path])
        assert code == ExitCodes.SUCCESS.value
        data = _stdout_json(capsys)
        assert data["name"] == "MySwiftPackage"
        assert [t["name"] for t in data["targets"]] == ["MySwiftPackage", "MySwiftPackageTests"]

    def test_merge_to_output_file(self, tmp_path, dump_path, desc_path):
        out = tmp_path / "pkg.json"
        code = spmbridge.main(
            ["merge", "--dump", dump_path, "--describe", desc_path, "-o", str(out)]
        )
        assert code == ExitCodes.SUCCESS.value
        assert json.loads(out.read_text(encoding="utf-8"))["tools_version"] == "5.7.0"

    def test_missing_file(self, tmp_path, desc_path):
        code = spmbridge.main(
            ["merge", "--dump", str(tmp_path / "nope.json"), "--describe", desc_path]
        )
        assert code == ExitCodes.FILE_ERROR.value

    def test_schema_error(self, tmp_path, desc_path):
        bad = tmp_path / "dump.json"
        bad.write_text('{"targets": []}', encoding="utf-8")
        code = spmbridge.main(["merge", "--dump", str(bad), "--describe", desc_path])
        assert code == ExitCodes.SCHEMA_ERROR.value


class TestIndexCommand:

    def test_index(self, capsys, dump_path, desc_path):
        code = spmbridge.main(
            ["index", "-p", f"swiftpkg_my_swift_package:my-swift-package:{dump_path}:{desc_path}"]
        )
        assert code == ExitCodes.SUCCESS.value
        doc = _stdout_json(capsys)
        assert doc["modules"][0]["label"] == "@swiftpkg_my_swift_package//:Sources_MySwiftPackage"
        assert doc["products"][0]["identity"] == "my-swift-package"

    def test_describe_path_may_contain_colons(self, capsys, tmp_path, dump_path, desc_path):
        colon_desc = tmp_path / "describe:v1.json"
        shutil.copyfile(desc_path, colon_desc)
        code = spmbridge.main(
            ["index", "-p", f"swiftpkg_my_swift_package:my-swift-package:{dump_path}:{colon_desc}"]
        )
        assert code == ExitCodes.SUCCESS.value
        assert _stdout_json(capsys)["products"][0]["identity"] == "my-swift-package"

    def test_colon_in_dump_path_is_split_off(self, tmp_path, dump_path, desc_path):
        colon_dump = tmp_path / "dump:v1.json"
        shutil.copyfile(dump_path, colon_dump)
        code = spmbridge.main(
            ["index", "-p", f"swiftpkg_my_swift_package:my-swift-package:{colon_dump}:{desc_path}"]
        )
        assert code == ExitCodes.FILE_ERROR.value

    def test_malformed_package_argument(self):
        assert spmbridge.main(["index", "-p", "only:two"]) == ExitCodes.SCHEMA_ERROR.value


class TestResolveCommands:

    def test_resolve_module(self, capsys, index_path):
        code = spmbridge.main(["resolve-module", "--index", index_path, "Logging"])
        assert code == ExitCodes.SUCCESS.value
        assert _stdout_json(capsys) == ["@swiftpkg_swift_log//:Sources_Logging"]

    def test_resolve_module_prefer(self, capsys, index_path):
        code = spmbridge.main(
            ["resolve-module", "--index", index_path, "Logging", "--prefer", "swiftpkg_other"]
        )
        assert code == ExitCodes.SUCCESS.value
        assert _stdout_json(capsys) == ["@swiftpkg_other//:Sources_Logging_objc"]

    def test_resolve_module_not_found(self, capsys, index_path):
        code = spmbridge.main(
            ["resolve-module", "--index", index_path, "Logging", "--restrict", "swiftpkg_none"]
        )
        assert code == ExitCodes.NOT_FOUND.value
        assert _stdout_json(capsys) == []

    def test_resolve_module_uses_config(self, capsys, tmp_path, index_path):
        cfg = tmp_path / "spmbridge.yml"
        cfg.write_text("resolve:\n  restrict_to_repo_names:\n    - swiftpkg_other\n", encoding="utf-8")
        code = spmbridge.main(["resolve-module", "--index", index_path, "Logging"])
        assert code == ExitCodes.SUCCESS.value
        assert _stdout_json(capsys) == ["@swiftpkg_other//:Sources_Logging"]

    def test_resolve_product(self, capsys, index_path):
        code = spmbridge.main(["resolve-product", "--index", index_path, "Swift-Log", "Logging"])
        assert code == ExitCodes.SUCCESS.value
        assert _stdout_json(capsys) == ["@swiftpkg_swift_log//:Sources_Logging"]

    def test_resolve_product_not_found(self, capsys, index_path):
        code = spmbridge.main(["resolve-product", "--index", index_path, "swift-log", "Nope"])
        assert code == ExitCodes.NOT_FOUND.value

    def test_invalid_index(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"modules": []}', encoding="utf-8")
        code = spmbridge.main(["resolve-module", "--index", str(bad), "Logging"])
        assert code == ExitCodes.SCHEMA_ERROR.value


class TestConfigAndLogging:

    def test_missing_explicit_config(self, tmp_path, index_path):
        code = spmbridge.main(
            ["resolve-module", "--index", index_path, "Logging", "-c", str(tmp_path / "none.yml")]
        )
        assert code == ExitCodes.FILE_ERROR.value

    def test_invalid_yaml_config(self, tmp_path, index_path):
        cfg = tmp_path / "broken.yml"
        cfg.write_text("resolve: [unclosed", encoding="utf-8")
        code = spmbridge.main(
            ["resolve-module", "--index", index_path, "Logging", "-c", str(cfg)]
        )
        assert code == ExitCodes.FILE_ERROR.value

    def test_logfile(self, tmp_path, index_path):
        log_file = tmp_path / "spmbridge.log"
        root = logging.getLogger()
        before = list(root.handlers)
        try:
            code = spmbridge.main([
                "resolve-module", "--index", index_path, "Nope",
                "--logfile", str(log_file), "--loglevel", "info",
            ])
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    handler.close()
                    root.removeHandler(handler)
        assert code == ExitCodes.NOT_FOUND.value
        assert "No module found for Nope" in log_file.read_text(encoding="utf-8")

    def test_cli_prefer_overrides_constants(self, index_path):
        spmbridge.main(["resolve-module", "--index", index_path, "Logging", "--prefer", "swiftpkg_other"])
        assert Constants.PREFERRED_REPO_NAME == "swiftpkg_other"
