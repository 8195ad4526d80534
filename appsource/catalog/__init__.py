"""
App Catalog Module

Purpose: publish catalog items that are correctly sized, checksummed and
fully disclose the capabilities their artifacts request.

This module:
- Synthesizes a CatalogItem from an artifact's manifest and entitlements
- Verifies a published CatalogItem against a fetched artifact
- Reports discrepancies as typed failures, never as exceptions

Principle: an app that requests a capability it does not disclose must
not be published.

Version: app_catalog_v1
"""

from .models import (
    AppCatalog,
    AppCategory,
    BackgroundModePermission,
    CatalogItem,
    CatalogVerifyRun,
    EntitlementPermission,
    FailureType,
    MessageKind,
    UsagePermission,
    VerifyFailure,
    VerifyResult,
)
from .entitlements import DeclarationPolicy, EntitlementCategory, EntitlementClassification
from .errors import CatalogError, MissingManifestData, UnreadableArtifact
from .extract import CapabilityExtractor
from .options import CatalogSourceOptions, resolve_option
from .builder import CatalogItemBuilder, build_catalog_item, create_catalog
from .verify import ArtifactVerifier, create_verify_run, load_catalog, verify_catalog

__version__ = "app_catalog_v1"

__all__ = [
    # Models
    "AppCatalog",
    "AppCategory",
    "BackgroundModePermission",
    "CatalogItem",
    "CatalogVerifyRun",
    "EntitlementPermission",
    "FailureType",
    "MessageKind",
    "UsagePermission",
    "VerifyFailure",
    "VerifyResult",
    # Classification
    "DeclarationPolicy",
    "EntitlementCategory",
    "EntitlementClassification",
    # Errors
    "CatalogError",
    "MissingManifestData",
    "UnreadableArtifact",
    # Synthesis
    "CapabilityExtractor",
    "CatalogSourceOptions",
    "resolve_option",
    "CatalogItemBuilder",
    "build_catalog_item",
    "create_catalog",
    # Verification
    "ArtifactVerifier",
    "create_verify_run",
    "load_catalog",
    "verify_catalog",
    "__version__",
]
