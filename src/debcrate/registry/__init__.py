"""Crate registries: where published versions and their manifests come from.

Public API::

    from debcrate.registry import CrateInfo, Registry, StaticRegistry
    from debcrate.registry.crates_io import CratesIoRegistry
"""

from __future__ import annotations

from debcrate.registry.base import CrateInfo, Registry, parse_index_record
from debcrate.registry.static import StaticRegistry

__all__ = [
    "CrateInfo",
    "Registry",
    "StaticRegistry",
    "parse_index_record",
]
