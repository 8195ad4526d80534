"""
Catalog Errors

Raised during synthesis and artifact access. Verification never raises
these to the caller; it records them as VerifyFailure entries instead.
"""

from typing import Optional


class CatalogError(Exception):
    """Base exception for catalog synthesis errors."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source


class UnreadableArtifact(CatalogError):
    """The artifact could not be opened, downloaded or parsed."""
    pass


class MissingManifestData(CatalogError):
    """The manifest lacks the bundle identifier or display name."""
    pass


class ManifestReadError(CatalogError):
    """A manifest reader could not extract the manifest or entitlements."""
    pass


class ArtifactDownloadError(CatalogError):
    """A remote artifact or catalog could not be fetched."""

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, source=source)
        self.status_code = status_code
