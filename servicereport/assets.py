"""Image prefetching for one document build.

Every image the layout may draw (logos, signatures, entry and activity
photos) is resolved up front into an :class:`ImageCache`.  A reference is
either a remote URL, fetched over HTTP(S) with a per-item timeout, or an
embedded payload (optionally ``data:<mime>;base64,`` prefixed) decoded in
place.  A reference that cannot be resolved maps to ``None``; nothing
raised while resolving one reference reaches the caller.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable, Iterable
from http.client import HTTPException
from urllib.request import Request, urlopen

from .models import ReportInputs
from .worker_pool import WorkerPool

LOGGER = logging.getLogger(__name__)

PREFETCH_BATCH_SIZE = 6
FETCH_TIMEOUT_S = 20.0
FETCH_CHUNK_BYTES = 64 * 1024
REMOTE_PREFIXES: tuple[str, ...] = ("http://", "https://")
EMBEDDED_MARKER = "base64,"

Fetcher = Callable[[str, float], bytes]


class ImageCache:
    """Reference -> decoded bytes, or ``None`` when the reference failed.

    Built once per document and only read while drawing.  Looking up a
    reference that was never requested also yields ``None``.
    """

    def __init__(self, entries: dict[str, bytes | None] | None = None) -> None:
        self._entries: dict[str, bytes | None] = dict(entries or {})

    def get(self, ref: str | None) -> bytes | None:
        if not ref:
            return None
        return self._entries.get(ref)

    def __contains__(self, ref: object) -> bool:
        return ref in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def missing_count(self) -> int:
        return sum(1 for value in self._entries.values() if value is None)

    @property
    def resolved_count(self) -> int:
        return len(self._entries) - self.missing_count

    @classmethod
    def empty(cls) -> ImageCache:
        return cls()


def is_remote_ref(ref: str) -> bool:
    return ref.strip().lower().startswith(REMOTE_PREFIXES)


def describe_ref(ref: str) -> str:
    """Loggable form of a reference (embedded payloads are not echoed)."""
    if is_remote_ref(ref):
        return ref
    return f"<embedded payload, {len(ref)} chars>"


def decode_embedded(ref: str) -> bytes:
    payload = ref.split(EMBEDDED_MARKER, 1)[1] if EMBEDDED_MARKER in ref else ref
    return base64.b64decode(payload.strip())


def fetch_url(url: str, timeout_s: float) -> bytes:
    """Download *url*; the whole transfer must finish within *timeout_s*.

    The socket timeout bounds each read; the overall deadline is checked
    between chunks.
    """
    deadline = time.monotonic() + timeout_s
    req = Request(url, headers={"User-Agent": "servicereport/1.0"})
    chunks: list[bytes] = []
    with urlopen(req, timeout=timeout_s) as resp:  # noqa: S310
        while True:
            if time.monotonic() > deadline:
                raise TimeoutError(f"download exceeded {timeout_s:g}s")
            chunk = resp.read1(FETCH_CHUNK_BYTES)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def resolve_image_ref(
    ref: str,
    *,
    timeout_s: float = FETCH_TIMEOUT_S,
    fetcher: Fetcher = fetch_url,
) -> bytes | None:
    """Resolve one reference to bytes, or ``None`` on any fetch/decode failure."""
    try:
        data = fetcher(ref, timeout_s) if is_remote_ref(ref) else decode_embedded(ref)
    except (OSError, ValueError, HTTPException) as exc:
        LOGGER.warning("Image %s could not be resolved: %s", describe_ref(ref), exc)
        return None
    return data or None


def collect_image_refs(inputs: ReportInputs) -> list[str]:
    """All image references a build of *inputs* may draw, in first-seen order."""
    report = inputs.report
    refs: list[str] = [
        inputs.company.logo_url,
        inputs.client.logo_url,
        report.provider_signature or "",
        report.client_signature or "",
    ]
    for entry in report.entries:
        refs.extend(entry.photo_urls)
        for data in entry.activity_data.values():
            refs.extend(data.photo_urls)
    return refs


def prefetch_images(
    refs: Iterable[str | None],
    *,
    batch_size: int = PREFETCH_BATCH_SIZE,
    timeout_s: float = FETCH_TIMEOUT_S,
    fetcher: Fetcher | None = None,
    pool: WorkerPool | None = None,
) -> ImageCache:
    """Resolve *refs* in parallel batches and return the populated cache.

    Falsy references are dropped and duplicates resolved once.  The
    returned cache holds an entry for every remaining reference.
    """
    unique = list(dict.fromkeys(ref for ref in refs if ref))
    if not unique:
        LOGGER.info("0 images ready")
        return ImageCache.empty()

    resolve_fetcher = fetcher or fetch_url

    def _resolve(ref: str) -> bytes | None:
        return resolve_image_ref(ref, timeout_s=timeout_s, fetcher=resolve_fetcher)

    owned_pool = pool is None
    worker_pool = pool or WorkerPool(
        max_workers=batch_size, thread_name_prefix="servicereport-prefetch"
    )
    try:
        results = worker_pool.map_batched(_resolve, unique, batch_size=batch_size)
    finally:
        if owned_pool:
            worker_pool.shutdown()

    cache = ImageCache({ref: results.get(ref) for ref in unique})
    LOGGER.info("%d images ready (%d missing)", len(cache), cache.missing_count)
    return cache
