"""crates.io sparse-index registry.

Fetches per-crate index files from the crates.io sparse index over HTTP
with ``httpx``. Each crate's file is fetched at most once per registry
instance; the file lists every published version as one JSON object per
line.

Usage::

    registry = CratesIoRegistry()
    info = registry.resolve(DependencySpec("serde", "^1.0"))
"""

from __future__ import annotations

import json
import logging

import httpx

from debcrate import __version__
from debcrate.exceptions import RegistryError
from debcrate.registry.base import CrateInfo, Registry, parse_index_record

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SPARSE_INDEX_URL: str = "https://index.crates.io"

# Timeout for all index HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = f"debcrate/{__version__}"


def index_path(name: str) -> str:
    """Relative path of a crate's file in a Cargo index.

    ``a`` -> ``1/a``, ``ab`` -> ``2/ab``, ``abc`` -> ``3/a/abc``,
    ``serde`` -> ``se/rd/serde``. Names are lowercased.
    """
    name = name.lower()
    if len(name) <= 2:
        return f"{len(name)}/{name}"
    if len(name) == 3:
        return f"3/{name[0]}/{name}"
    return f"{name[0:2]}/{name[2:4]}/{name}"


class CratesIoRegistry(Registry):
    """Registry backed by the crates.io sparse index."""

    def __init__(
        self,
        index_url: str = SPARSE_INDEX_URL,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__()
        self._index_url = index_url.rstrip("/")
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
        self._cache: dict[str, list[CrateInfo]] = {}

    @property
    def registry_name(self) -> str:
        return "crates.io"

    def fetch_versions(self, name: str) -> list[CrateInfo]:
        key = name.lower()
        if key not in self._cache:
            self._cache[key] = self._fetch(name)
        return list(self._cache[key])

    def close(self) -> None:
        self._client.close()

    def _fetch(self, name: str) -> list[CrateInfo]:
        url = f"{self._index_url}/{index_path(name)}"
        logger.debug("fetching %s", url)
        try:
            resp = self._client.get(url)
        except httpx.TimeoutException as exc:
            logger.warning("Timeout fetching %s", url)
            raise RegistryError(f"Timeout fetching index entry for {name!r}") from exc
        except httpx.RequestError as exc:
            logger.warning("Request error for %s: %s", url, exc)
            raise RegistryError(f"Cannot fetch index entry for {name!r}: {exc}") from exc

        if resp.status_code in (404, 410, 451):
            return []
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("HTTP %d from %s", exc.response.status_code, url)
            raise RegistryError(
                f"HTTP {exc.response.status_code} fetching index entry for {name!r}"
            ) from exc

        infos = []
        for lineno, line in enumerate(resp.text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except ValueError as exc:
                raise RegistryError(
                    f"Invalid JSON on line {lineno} of index entry for {name!r}"
                ) from exc
            infos.append(parse_index_record(record))
        return infos
