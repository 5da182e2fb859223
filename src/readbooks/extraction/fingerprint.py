"""Content fingerprints used as deduplication identity."""

from __future__ import annotations

from collections.abc import Sequence
import hashlib


def fingerprint_pages(pages: Sequence[str]) -> int:
    """Return a stable unsigned 64-bit fingerprint of an ordered page list.

    Each page is length-prefixed so that page boundaries are part of the
    identity: ``["ab", "c"]`` and ``["a", "bc"]`` never collide by construction.
    """

    digest = hashlib.sha256()
    for page in pages:
        encoded = page.encode("utf-8", errors="surrogatepass")
        digest.update(len(encoded).to_bytes(8, "big"))
        digest.update(encoded)
    return int.from_bytes(digest.digest()[:8], "big")


def format_fingerprint(fingerprint: int) -> str:
    return f"{fingerprint:016x}"


def parse_fingerprint(value: str) -> int:
    return int(value, 16)
