"""Tests for the package discovery settings in pyproject.toml."""

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")
setuptools = pytest.importorskip("setuptools")

ROOT = Path(__file__).resolve().parent.parent


def test_subpackages_without_init_are_packaged():
    config = tomllib.loads((ROOT / "pyproject.toml").read_text())
    find = config["tool"]["setuptools"]["packages"]["find"]
    assert find["namespaces"] is True

    packages = setuptools.find_namespace_packages(
        where=str(ROOT / find["where"][0]), include=find["include"]
    )
    for name in ("smartmeter", "smartmeter.models", "smartmeter.routes", "smartmeter.services"):
        assert name in packages
