"""In-memory crate registry.

``StaticRegistry`` holds index records in memory. It backs offline runs
(``--index-file``) and tests. Records use the crates.io index format; a YAML
index file groups them by crate name::

    crates:
      alpha:
        - vers: 1.0.0
          deps:
            - {name: beta, req: "^0.3"}
      beta:
        - vers: 0.3.4
          features:
            std: []
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from debcrate.exceptions import RegistryError
from debcrate.registry.base import CrateInfo, Registry, parse_index_record

logger = logging.getLogger(__name__)


class StaticRegistry(Registry):
    """Registry backed by an in-memory list of index records."""

    def __init__(self, records: Iterable[Mapping[str, Any] | CrateInfo] = ()) -> None:
        super().__init__()
        self._crates: dict[str, list[CrateInfo]] = {}
        for record in records:
            info = record if isinstance(record, CrateInfo) else parse_index_record(record)
            self._crates.setdefault(info.name, []).append(info)

    @property
    def registry_name(self) -> str:
        return "static index"

    @classmethod
    def from_yaml(cls, path: Path) -> StaticRegistry:
        """Load a YAML index file.

        Raises:
            RegistryError: If the file cannot be read or has the wrong shape.
        """
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise RegistryError(f"Cannot load index file {path}: {exc}") from exc

        crates = data.get("crates") if isinstance(data, dict) else None
        if not isinstance(crates, dict):
            raise RegistryError(f"Index file {path} has no 'crates' mapping")

        records: list[dict[str, Any]] = []
        for name, versions in crates.items():
            for entry in versions or ():
                if not isinstance(entry, dict):
                    raise RegistryError(f"Index entry for {name!r} is not a mapping")
                # YAML reads 1.0 style versions as numbers; keep them textual
                records.append({
                    **entry,
                    "name": name,
                    "vers": str(entry.get("vers")),
                    "deps": [_textual_req(dep) for dep in entry.get("deps") or ()],
                })
        logger.debug("loaded %d index records from %s", len(records), path)
        return cls(records)

    def add(
        self,
        name: str,
        vers: str,
        deps: Iterable[Mapping[str, Any]] = (),
        features: Mapping[str, Iterable[str]] | None = None,
        *,
        yanked: bool = False,
    ) -> CrateInfo:
        """Publish one version; returns its ``CrateInfo``."""
        info = parse_index_record({
            "name": name,
            "vers": vers,
            "deps": list(deps),
            "features": {k: list(v) for k, v in (features or {}).items()},
            "yanked": yanked,
        })
        self._crates.setdefault(name, []).append(info)
        return info

    def fetch_versions(self, name: str) -> list[CrateInfo]:
        return list(self._crates.get(name, ()))


def _textual_req(dep: Any) -> Any:
    if isinstance(dep, dict) and isinstance(dep.get("req"), (int, float)):
        return {**dep, "req": str(dep["req"])}
    return dep
