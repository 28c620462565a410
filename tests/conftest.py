"""Shared fixtures for the test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

GZIP_FNAME = 0x08


def scramble_gzip_payload(source: Path, target: Path) -> Path:
    """Copy a gzip file keeping its header intact but inverting the deflate stream."""
    raw = bytearray(source.read_bytes())
    start = 10
    if raw[3] & GZIP_FNAME:
        start = raw.index(0, start) + 1
    # Trailing CRC32 and size stay as written
    for i in range(start, len(raw) - 8):
        raw[i] ^= 0xFF
    target.write_bytes(bytes(raw))
    return target


@pytest.fixture
def scramble_gzip() -> Callable[[Path, Path], Path]:
    """Factory that writes a copy of a .gz file with a corrupt deflate stream."""
    return scramble_gzip_payload
