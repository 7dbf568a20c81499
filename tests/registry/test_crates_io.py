"""Tests for CratesIoRegistry. All HTTP traffic goes through httpx.MockTransport.

Validates sparse-index paths, record parsing from JSON lines, per-crate
caching, and mapping of HTTP failures to registry errors.
"""

from __future__ import annotations

import json

import httpx
import pytest

from debcrate.core.models import DependencySpec
from debcrate.exceptions import RegistryError, UnresolvableRangeError
from debcrate.registry.crates_io import USER_AGENT, CratesIoRegistry, index_path

INDEX_URL = "https://index.test"


def _lines(*records: dict) -> str:
    return "\n".join(json.dumps(r) for r in records) + "\n"


def _record(name: str, vers: str, **extra) -> dict:
    return {"name": name, "vers": vers, "deps": [], "features": {}, "yanked": False, **extra}


def _registry(handler) -> CratesIoRegistry:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return CratesIoRegistry(INDEX_URL, client=client)


class TestIndexPath:
    """Tests for the sparse index file layout."""

    @pytest.mark.parametrize(
        "name, expected",
        [("a", "1/a"), ("ab", "2/ab"), ("abc", "3/a/abc"), ("serde", "se/rd/serde"),
         ("Serde_JSON", "se/rd/serde_json")],
    )
    def test_paths(self, name: str, expected: str) -> None:
        assert index_path(name) == expected


class TestFetch:
    """Tests for fetching and parsing index files."""

    def test_resolve_from_index(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/se/rd/serde"
            return httpx.Response(200, text=_lines(
                _record("serde", "1.0.188"),
                _record("serde", "1.0.190"),
                _record("serde", "1.0.191", yanked=True),
            ))

        reg = _registry(handler)
        info = reg.resolve(DependencySpec("serde", "^1.0"))
        assert str(info.identity) == "serde@1.0.190"

    def test_features2_merged(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=_lines(
                _record("log", "0.4.20", features={"std": []}, features2={"kv": ["dep:value-bag"]},
                        deps=[{"name": "value-bag", "req": "^1", "optional": True}]),
            ))

        info = _registry(handler).resolve(DependencySpec("log", "*"))
        assert set(info.features) == {"std", "kv"}

    def test_each_crate_fetched_once(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, text=_lines(_record("nom", "7.1.3")))

        reg = _registry(handler)
        reg.resolve(DependencySpec("nom", "^7"))
        reg.list_versions("nom")
        reg.resolve(DependencySpec("nom", "=7.1.3"))
        assert calls == ["/3/n/nom"]

    def test_blank_lines_ignored(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="\n" + _lines(_record("ab", "0.1.0")) + "\n")

        assert [str(v) for v in _registry(handler).list_versions("ab")] == ["0.1.0"]

    def test_default_client_headers(self) -> None:
        reg = CratesIoRegistry(INDEX_URL)
        try:
            assert reg._client.headers["User-Agent"] == USER_AGENT
        finally:
            reg.close()


class TestFailures:
    """Tests for error mapping."""

    def test_not_found_is_unresolvable(self) -> None:
        reg = _registry(lambda request: httpx.Response(404))
        with pytest.raises(UnresolvableRangeError, match="crates.io"):
            reg.resolve(DependencySpec("missing", "*"))

    def test_server_error(self) -> None:
        reg = _registry(lambda request: httpx.Response(503))
        with pytest.raises(RegistryError, match="HTTP 503"):
            reg.resolve(DependencySpec("serde", "*"))

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RegistryError, match="Cannot fetch"):
            _registry(handler).resolve(DependencySpec("serde", "*"))

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RegistryError, match="Timeout"):
            _registry(handler).resolve(DependencySpec("serde", "*"))

    def test_invalid_json_line(self) -> None:
        reg = _registry(lambda request: httpx.Response(200, text="{not json}\n"))
        with pytest.raises(RegistryError, match="line 1"):
            reg.resolve(DependencySpec("serde", "*"))

    def test_malformed_record(self) -> None:
        reg = _registry(lambda request: httpx.Response(200, text='{"name": "serde"}\n'))
        with pytest.raises(RegistryError):
            reg.resolve(DependencySpec("serde", "*"))

    def test_registry_error_is_resolution_error(self) -> None:
        from debcrate.exceptions import ResolutionError

        assert issubclass(RegistryError, ResolutionError)
