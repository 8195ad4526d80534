"""App Source Shared Utilities"""

from .hashing import (
    sha256_file,
    canonicalize,
    canonicalize_and_hash,
    DigestFunction,
)

__all__ = [
    "sha256_file",
    "canonicalize",
    "canonicalize_and_hash",
    "DigestFunction",
]
