"""Shared fixtures for debcrate tests."""

from __future__ import annotations

import pathlib

import pytest

from debcrate.registry.static import StaticRegistry


@pytest.fixture
def registry() -> StaticRegistry:
    """A small index: alpha depends on beta ^0.3, beta has two 0.x lines."""
    reg = StaticRegistry()
    reg.add("alpha", "1.0.0", deps=[{"name": "beta", "req": "^0.3"}])
    reg.add("beta", "0.3.1")
    reg.add("beta", "0.3.4")
    reg.add("beta", "0.4.0")
    return reg


@pytest.fixture
def index_file(tmp_path: pathlib.Path) -> pathlib.Path:
    """A YAML index file with a chain, a cycle and a dangling dependency."""
    path = tmp_path / "index.yaml"
    path.write_text(
        "crates:\n"
        "  alpha:\n"
        "    - vers: 1.0.0\n"
        "      deps:\n"
        "        - {name: beta, req: '^0.3'}\n"
        "        - {name: gamma, req: '^1', kind: dev}\n"
        "  beta:\n"
        "    - vers: 0.3.4\n"
        "    - vers: 0.4.0\n"
        "  gamma:\n"
        "    - vers: 1.2.0\n"
        "  cyc-a:\n"
        "    - vers: 1.0.0\n"
        "      deps:\n"
        "        - {name: cyc-b, req: '1'}\n"
        "  cyc-b:\n"
        "    - vers: 1.0.0\n"
        "      deps:\n"
        "        - {name: cyc-a, req: '1'}\n"
        "  broken:\n"
        "    - vers: 2.0.0\n"
        "      deps:\n"
        "        - {name: ghost, req: '^3'}\n"
    )
    return path
