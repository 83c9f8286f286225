"""Shared fixtures for the spmbridge tests."""

import json
from pathlib import Path

import pytest

from constants import Constants

FIXTURES = Path(__file__).parent / "fixtures"


def _load(name):
    return json.loads((FIXTURES / name).read_text(encoding="utf-8"))


@pytest.fixture
def dump_manifest():
    """Decoded dump-package output for MySwiftPackage."""
    return _load("my_swift_package_dump.json")


@pytest.fixture
def desc_manifest():
    """Decoded describe output for MySwiftPackage."""
    return _load("my_swift_package_describe.json")


@pytest.fixture
def dump_path():
    return str(FIXTURES / "my_swift_package_dump.json")


@pytest.fixture
def desc_path():
    return str(FIXTURES / "my_swift_package_describe.json")


@pytest.fixture(autouse=True)
def reset_resolver_constants(monkeypatch):
    """Keep config overrides applied by one test from leaking into the next."""
    monkeypatch.setattr(Constants, "PREFERRED_REPO_NAME", None)
    monkeypatch.setattr(Constants, "RESTRICT_TO_REPO_NAMES", [])
    for var in ("SPMBRIDGE_PREFERRED_REPO", "SPMBRIDGE_RESTRICT_REPOS",
                "SPMBRIDGE_CONFIG", "SPMBRIDGE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
