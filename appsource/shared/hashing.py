"""
App Source Canonical Hashing Layer
Single source of truth for all hash operations.

Two concerns live here:
- artifact digests (hex sha256 over raw file bytes, read in bounded chunks)
- canonical JSON hashing for verify-run determinism
"""

import hashlib
import json
from pathlib import Path
from typing import Any, Callable, Union

# Fields to exclude from hashing (volatile/generated)
VOLATILE_FIELDS = frozenset([
    "created_at",
    "timestamp",
    "run_id",
    "_metadata"
])

DEFAULT_CHUNK_SIZE = 1024 * 1024

# A digest function takes a file path and returns a lowercase hex digest
DigestFunction = Callable[[Path], str]


def sha256_file(path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Hex sha256 of a file's full contents.

    Reads in fixed-size chunks so memory stays bounded regardless of
    artifact size.
    """
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


def canonicalize(obj: Any, exclude_volatile: bool = True) -> str:
    """
    Convert object to canonical JSON string.
    Deterministic: same input always produces same output.
    """
    def _clean(o: Any) -> Any:
        if isinstance(o, dict):
            return {
                k: _clean(v)
                for k, v in sorted(o.items())
                if not (exclude_volatile and k in VOLATILE_FIELDS)
            }
        elif isinstance(o, (list, tuple)):
            return [_clean(i) for i in o]
        elif isinstance(o, float):
            # Normalize floats to avoid precision issues
            return round(o, 10)
        return o

    cleaned = _clean(obj)
    return json.dumps(cleaned, sort_keys=True, separators=(',', ':'), ensure_ascii=True, default=str)


def canonicalize_and_hash(obj: Any, exclude_volatile: bool = True) -> str:
    """
    Canonical hash for catalog structures.
    Returns: "sha256:<64-char-hex>"
    """
    canonical = canonicalize(obj, exclude_volatile)
    digest = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
    return f"sha256:{digest}"

