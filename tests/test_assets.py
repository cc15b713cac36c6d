"""Tests for image prefetching: resilience, batching and embedded payloads."""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock, patch

import pytest
from builders import TINY_PNG, TINY_PNG_B64, TINY_PNG_DATA_URI, make_inputs

from servicereport.assets import (
    ImageCache,
    collect_image_refs,
    decode_embedded,
    describe_ref,
    fetch_url,
    is_remote_ref,
    prefetch_images,
    resolve_image_ref,
)
from servicereport.models import ActivityData
from servicereport.worker_pool import WorkerPool


class _FakeFetcher:
    """Thread-safe fetcher that records calls and the peak number in flight."""

    def __init__(self, *, fail: set[str] | None = None, delay_s: float = 0.01) -> None:
        self._lock = threading.Lock()
        self._fail = fail or set()
        self._delay_s = delay_s
        self.calls: list[tuple[str, float]] = []
        self.in_flight = 0
        self.peak = 0

    def __call__(self, url: str, timeout_s: float) -> bytes:
        with self._lock:
            self.calls.append((url, timeout_s))
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self._delay_s)
            if url in self._fail:
                raise socket.timeout("timed out")
            return f"img:{url}".encode()
        finally:
            with self._lock:
                self.in_flight -= 1


def _urls(count: int) -> list[str]:
    return [f"https://cdn.example.com/photo-{i}.jpg" for i in range(count)]


# ---------------------------------------------------------------------------
# Reference helpers
# ---------------------------------------------------------------------------


def test_is_remote_ref() -> None:
    assert is_remote_ref("https://x/y.png")
    assert is_remote_ref("  HTTP://x/y.png")
    assert not is_remote_ref(TINY_PNG_DATA_URI)


def test_describe_ref_does_not_echo_payloads() -> None:
    assert TINY_PNG_B64 not in describe_ref(TINY_PNG_DATA_URI)
    assert describe_ref("https://x/y.png") == "https://x/y.png"


def test_decode_embedded_with_and_without_prefix() -> None:
    assert decode_embedded(TINY_PNG_DATA_URI) == TINY_PNG
    assert decode_embedded(TINY_PNG_B64) == TINY_PNG


def test_fetch_url_passes_timeout() -> None:
    response = MagicMock()
    response.__enter__.return_value.read1.side_effect = [b"by", b"tes", b""]
    with patch("servicereport.assets.urlopen", return_value=response) as mock_urlopen:
        assert fetch_url("https://x/y.png", 7.5) == b"bytes"
    assert mock_urlopen.call_args.kwargs["timeout"] == 7.5


class _TricklingHandler(BaseHTTPRequestHandler):
    """Sends a ten byte body one byte at a time, each well inside the read timeout."""

    def do_GET(self) -> None:  # noqa: N802
        self.send_response(200)
        self.send_header("Content-Type", "image/png")
        self.send_header("Content-Length", "10")
        self.end_headers()
        try:
            for _ in range(10):
                self.wfile.write(b"x")
                self.wfile.flush()
                time.sleep(0.3)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, *args: object) -> None:
        pass


@pytest.fixture
def trickling_url() -> Iterator[str]:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TricklingHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/slow.png"
    finally:
        server.shutdown()
        server.server_close()


def test_fetch_url_enforces_overall_deadline(trickling_url: str) -> None:
    started = time.monotonic()
    with pytest.raises(TimeoutError):
        fetch_url(trickling_url, 1.0)
    assert time.monotonic() - started < 2.0


def test_trickling_download_resolves_absent(trickling_url: str, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="servicereport.assets"):
        assert resolve_image_ref(trickling_url, timeout_s=1.0) is None
    assert "could not be resolved" in caplog.text


# ---------------------------------------------------------------------------
# Single reference resolution
# ---------------------------------------------------------------------------


class TestResolveImageRef:
    def test_remote_success(self) -> None:
        fetcher = _FakeFetcher(delay_s=0.0)
        assert resolve_image_ref("https://x/a.png", timeout_s=3.0, fetcher=fetcher) == (
            b"img:https://x/a.png"
        )
        assert fetcher.calls == [("https://x/a.png", 3.0)]

    def test_remote_failure_is_absent(self, caplog) -> None:
        fetcher = _FakeFetcher(fail={"https://x/a.png"}, delay_s=0.0)
        with caplog.at_level(logging.WARNING):
            assert resolve_image_ref("https://x/a.png", fetcher=fetcher) is None
        assert "https://x/a.png" in caplog.text

    def test_bad_embedded_payload_is_absent(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            assert resolve_image_ref("data:image/png;base64,abc") is None
        assert "base64,abc" not in caplog.text

    def test_empty_body_is_absent(self) -> None:
        assert resolve_image_ref("https://x/a.png", fetcher=lambda url, t: b"") is None

    def test_embedded_payload_never_hits_fetcher(self) -> None:
        fetcher = MagicMock()
        assert resolve_image_ref(TINY_PNG_DATA_URI, fetcher=fetcher) == TINY_PNG
        fetcher.assert_not_called()


# ---------------------------------------------------------------------------
# Prefetch
# ---------------------------------------------------------------------------


class TestPrefetchImages:
    def test_every_reference_has_an_entry(self) -> None:
        urls = _urls(15)
        failing = {urls[2], urls[9], urls[14]}
        cache = prefetch_images(urls, fetcher=_FakeFetcher(fail=failing))
        assert len(cache) == 15
        assert all(url in cache for url in urls)
        assert cache.missing_count == 3
        assert cache.resolved_count == 12
        for url in failing:
            assert cache.get(url) is None
        assert cache.get(urls[0]) == f"img:{urls[0]}".encode()

    def test_never_more_than_six_in_flight(self) -> None:
        fetcher = _FakeFetcher()
        with WorkerPool(max_workers=12) as pool:
            prefetch_images(_urls(20), fetcher=fetcher, pool=pool)
        assert len(fetcher.calls) == 20
        assert fetcher.peak <= 6

    def test_custom_batch_size_and_timeout(self) -> None:
        fetcher = _FakeFetcher()
        prefetch_images(_urls(5), batch_size=2, timeout_s=1.5, fetcher=fetcher)
        assert fetcher.peak <= 2
        assert {timeout for _, timeout in fetcher.calls} == {1.5}

    def test_unexpected_fetcher_error_still_yields_absent_entry(self) -> None:
        def _explode(url: str, timeout_s: float) -> bytes:
            raise RuntimeError("driver bug")

        cache = prefetch_images(["https://x/a.png"], fetcher=_explode)
        assert "https://x/a.png" in cache
        assert cache.get("https://x/a.png") is None

    def test_duplicates_and_blanks_resolved_once(self) -> None:
        fetcher = _FakeFetcher(delay_s=0.0)
        cache = prefetch_images(
            ["https://x/a.png", "", None, "https://x/a.png", "https://x/b.png"], fetcher=fetcher
        )
        assert len(cache) == 2
        assert sorted(url for url, _ in fetcher.calls) == ["https://x/a.png", "https://x/b.png"]

    def test_no_references(self) -> None:
        cache = prefetch_images([None, ""])
        assert len(cache) == 0
        assert cache.get("anything") is None

    def test_logs_summary(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="servicereport.assets"):
            prefetch_images(_urls(3), fetcher=_FakeFetcher(fail={_urls(3)[1]}, delay_s=0.0))
        assert "3 images ready (1 missing)" in caplog.text

    def test_caller_pool_is_left_running(self) -> None:
        pool = WorkerPool(max_workers=2)
        try:
            prefetch_images(_urls(2), fetcher=_FakeFetcher(delay_s=0.0), pool=pool)
            assert pool.stats()["alive"] is True
        finally:
            pool.shutdown()


def test_collect_image_refs_covers_every_drawn_image() -> None:
    inputs = make_inputs()
    report = inputs.report
    report.provider_signature = "https://x/sig-provider.png"
    report.client_signature = "https://x/sig-client.png"
    report.entries[0].photo_urls = ["https://x/e0.png"]
    report.entries[1].activity_data = {"a1": ActivityData(photo_urls=["https://x/act.png"])}
    refs = collect_image_refs(inputs)
    assert refs[0] == TINY_PNG_DATA_URI
    assert "https://x/sig-provider.png" in refs
    assert "https://x/sig-client.png" in refs
    assert "https://x/e0.png" in refs
    assert "https://x/act.png" in refs


def test_image_cache_get_unknown_and_empty() -> None:
    cache = ImageCache({"a": b"1", "b": None})
    assert cache.get("a") == b"1"
    assert cache.get("b") is None
    assert cache.get("c") is None
    assert cache.get(None) is None
    assert "b" in cache
    assert "c" not in cache
