"""
L4 Execution — HTTP fetches and streaming digest downloads.

Every network call of the native installer goes through here:
small text/JSON GETs against the release bucket and one streamed
binary download that hashes the same chunks it writes, so the digest
always describes the bytes on disk.
"""

from __future__ import annotations

import hashlib
import http.client
import json
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from toolwarden.core.services.tool_install.data.constants import HTTP_USER_AGENT

logger = logging.getLogger(__name__)

_CHUNK = 8192


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def _request(url: str) -> urllib.request.Request:
    return urllib.request.Request(url, headers={"User-Agent": HTTP_USER_AGENT})


def fetch_text(url: str, *, timeout: int = 60) -> str:
    """GET ``url`` and return the body stripped of surrounding whitespace.

    Raises:
        urllib.error.URLError: On connection failures and HTTP errors.
        http.client.HTTPException: When the response is cut short.
    """
    logger.debug("GET %s", url)
    with urllib.request.urlopen(_request(url), timeout=timeout) as resp:
        return resp.read().decode("utf-8", errors="replace").strip()


def fetch_json(url: str, *, timeout: int = 60) -> Any:
    """GET ``url`` and decode it as JSON.

    Raises:
        urllib.error.URLError: On connection failures and HTTP errors.
        ValueError: When the body is not valid JSON.
    """
    return json.loads(fetch_text(url, timeout=timeout))


def download_with_digest(
    url: str,
    dest: Path,
    *,
    algo: str = "sha256",
    timeout: int = 60,
) -> tuple[str, int]:
    """Stream ``url`` into ``dest``, hashing each chunk as it is written.

    A partial file is removed when the transfer fails.

    Returns:
        ``(hexdigest, bytes_written)``.

    Raises:
        urllib.error.URLError: On connection failures and HTTP errors.
        OSError: When ``dest`` cannot be written.
        http.client.HTTPException: When the response is cut short.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    h = hashlib.new(algo)
    written = 0

    try:
        with urllib.request.urlopen(_request(url), timeout=timeout) as resp:
            total = int(resp.headers.get("Content-Length", 0) or 0) if resp.headers else 0
            with open(dest, "wb") as f:
                last_progress = -1
                while True:
                    chunk = resp.read(_CHUNK)
                    if not chunk:
                        break
                    f.write(chunk)
                    h.update(chunk)
                    written += len(chunk)

                    # Progress tracking (log every 5%)
                    if total > 0:
                        pct = int(written * 100 / total)
                        if pct >= last_progress + 5:
                            last_progress = pct
                            logger.info(
                                "Download progress: %d%% (%s / %s)",
                                pct, _fmt_size(written), _fmt_size(total),
                            )
    except (OSError, http.client.HTTPException):  # URLError, IncompleteRead
        dest.unlink(missing_ok=True)
        raise

    logger.info("Downloaded %s to %s", _fmt_size(written), dest)
    return h.hexdigest(), written
