"""
Artifact Verification

Checks that a published CatalogItem still describes its artifact. The
item is the claim; the artifact is the truth.

Phases run in order and never abort the call:
1. static checks on the item (checksum present, size positive)
2. download location resolution (missing URL ends here)
3. acquisition (download failure ends here)
4. content integrity (size and checksum, checked independently)
5. capability reconciliation against the artifact's own manifest

Every problem found is appended to one list and returned in the
VerifyResult. A result with no failures is verified.

Version: app_catalog_v1
"""

import asyncio
import logging
import os
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Callable, Collection, List, Optional

from pydantic import ValidationError

from .. import config
from ..shared.hashing import DigestFunction, sha256_file
from .access import ArtifactAccessor, resolve_location
from .entitlements import (
    DEFAULT_CLASSIFICATION,
    DeclarationPolicy,
    EntitlementClassification,
)
from .errors import ArtifactDownloadError, CatalogError
from .extract import (
    background_modes,
    undisclosed_entitlements,
    usage_descriptions,
    usage_identifier,
)
from .manifest import ArchiveManifestReader, BundleInfo, ManifestReader
from .models import (
    AppCatalog,
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

logger = logging.getLogger(__name__)

# Receives (severity, text) as each failure is detected
Observer = Callable[[MessageKind, str], None]


class _FailureLog:
    """Accumulates failures for one item and reports each as it is added."""

    def __init__(self, app: CatalogItem, observer: Optional[Observer] = None):
        self.app = app
        self.observer = observer
        self.failures: List[VerifyFailure] = []

    @property
    def url(self) -> str:
        return self.app.download_url or "nourl"

    def add(self, failure_type: FailureType, message: str) -> None:
        text = f"app verify failure for {self.url}: {failure_type.value} {message}"
        logger.warning(text)
        if self.observer is not None:
            self.observer(MessageKind.WARN, text)
        self.failures.append(VerifyFailure(type=failure_type, message=message))


class ArtifactVerifier:
    """
    Verifies catalog items against their artifacts.

    Holds no per-call state, so one instance can verify many items
    concurrently.
    """

    def __init__(
        self,
        reader: Optional[ManifestReader] = None,
        accessor: Optional[ArtifactAccessor] = None,
        classification: EntitlementClassification = DEFAULT_CLASSIFICATION,
        policy: DeclarationPolicy = DeclarationPolicy.NOT_FALSE,
        digest: DigestFunction = sha256_file,
    ):
        self.reader = reader or ArchiveManifestReader()
        self.accessor = accessor or ArtifactAccessor()
        self.classification = classification
        self.policy = policy
        self.digest = digest

    async def verify(
        self,
        app: CatalogItem,
        catalog_url: Optional[str] = None,
        observer: Optional[Observer] = None,
    ) -> VerifyResult:
        """
        Verify one catalog item.

        Args:
            app: the published item
            catalog_url: catalog location, for resolving relative download URLs
            observer: optional callback for each failure as it is found

        Returns:
            VerifyResult; failures is None when the item verified
        """
        log = _FailureLog(app, observer)

        if app.sha256 is None:
            log.add(FailureType.MISSING_CHECKSUM, "App missing sha256 checksum property")
        if (app.size or 0) <= 0:
            log.add(FailureType.INVALID_SIZE, "App size property unset or invalid")

        if not app.download_url:
            log.add(FailureType.MISSING_URL, "No download URL")
            return self._result(app, log)

        location = resolve_location(app.download_url, catalog_url)
        logger.debug(f"Verifying {app.bundle_identifier} at {location}")

        async with AsyncExitStack() as stack:
            try:
                path = await stack.enter_async_context(self.accessor.acquire(location))
            except (ArtifactDownloadError, OSError) as e:
                log.add(FailureType.DOWNLOAD_FAILED, f"Failed to download app from: {location} ({e})")
                return self._result(app, log)

            self.validate_artifact(app, path, log)

        return self._result(app, log)

    @staticmethod
    def _result(app: CatalogItem, log: _FailureLog) -> VerifyResult:
        return VerifyResult(app=app, failures=log.failures or None)

    def validate_artifact(self, app: CatalogItem, path: Path, log: _FailureLog) -> None:
        """Content integrity and capability reconciliation for an acquired file."""
        if not path.is_file() or not os.access(path, os.R_OK):
            log.add(FailureType.MISSING_FILE, f"Download file {path} does not exist for: {log.url}")
            return

        if app.size is not None:
            try:
                file_size = os.path.getsize(path)
            except OSError as e:
                log.add(FailureType.MISSING_FILE, f"Download file {path} could not be read for: {log.url} ({e})")
                return
            if app.size != file_size:
                log.add(
                    FailureType.SIZE_MISMATCH,
                    f"Download size mismatch ({app.size} vs. {file_size}) from: {log.url}"
                )

        if app.sha256 is not None:
            try:
                checksum = self.digest(path)
            except OSError as e:
                log.add(FailureType.MISSING_FILE, f"Download file {path} could not be read for: {log.url} ({e})")
                return
            if app.sha256 != checksum:
                log.add(
                    FailureType.CHECKSUM_FAILED,
                    f"Checksum mismatch ({app.sha256} vs. {checksum}) from: {log.url}"
                )

        try:
            bundle = self.reader.load(path)
        except Exception as e:
            log.add(
                FailureType.BUNDLE_LOAD_FAILED,
                f"Could not load bundle information for {log.url}: {e}"
            )
            return

        self.reconcile_permissions(app, bundle, log)

    def reconcile_permissions(self, app: CatalogItem, bundle: BundleInfo, log: _FailureLog) -> None:
        """Every capability the artifact requests must be disclosed by the item."""
        declared_usage = {
            usage_identifier(identifier): permission
            for identifier, permission in app.permissions_of(UsagePermission).items()
        }
        for identifier, text in usage_descriptions(bundle.manifest).items():
            permission = declared_usage.get(identifier)
            if permission is None:
                log.add(
                    FailureType.USAGE_DESCRIPTION_MISSING,
                    f"Missing a permission entry for usage key “{identifier}”"
                )
            elif permission.usage_description != text:
                log.add(
                    FailureType.USAGE_DESCRIPTION_MISMATCH,
                    f"The usage key “{identifier}” does not match the catalog metadata: "
                    f"catalog “{permission.usage_description}” vs. artifact “{text}”"
                )

        declared_modes = app.permissions_of(BackgroundModePermission)
        for mode in background_modes(bundle.manifest) or []:
            if mode not in declared_modes:
                log.add(
                    FailureType.MISSING_BACKGROUND_MODE,
                    f"Missing a permission entry for background mode “{mode}”"
                )

        if not bundle.entitlements:
            log.add(FailureType.ENTITLEMENTS_MISSING, f"No entitlements found in {log.url}")
            return

        declared_entitlements = app.permissions_of(EntitlementPermission)
        reported = set()
        for entitlements in bundle.entitlements:
            for key in undisclosed_entitlements(entitlements, self.classification, self.policy):
                if key in declared_entitlements or key in reported:
                    continue
                reported.add(key)
                log.add(
                    FailureType.MISSING_ENTITLEMENT_PERMISSION,
                    f"Missing a permission entry for entitlement key “{key}”"
                )


# ============================================================================
# CATALOG-LEVEL HELPERS
# ============================================================================

async def load_catalog(location: str, accessor: Optional[ArtifactAccessor] = None) -> AppCatalog:
    """
    Load a catalog from a local path or URL.

    Raises:
        ArtifactDownloadError: the catalog could not be fetched
        CatalogError: the document is not a valid catalog
    """
    accessor = accessor or ArtifactAccessor()
    data = await accessor.fetch_json(location)
    try:
        return AppCatalog.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog at {location}: {e}", source=location) from e


async def verify_catalog(
    catalog: AppCatalog,
    catalog_url: Optional[str] = None,
    bundle_ids: Optional[Collection[str]] = None,
    concurrency: int = config.VERIFY_CONCURRENCY,
    verifier: Optional[ArtifactVerifier] = None,
    observer: Optional[Observer] = None,
) -> List[VerifyResult]:
    """
    Verify every item in a catalog with bounded parallelism.

    Args:
        catalog: catalog to verify
        catalog_url: catalog location for relative download URLs
        bundle_ids: only verify these bundle identifiers (all if empty)
        concurrency: maximum simultaneous verifications
        verifier: ArtifactVerifier to use
        observer: forwarded to each verification

    Returns:
        Results in catalog order
    """
    verifier = verifier or ArtifactVerifier()
    apps = catalog.apps
    if bundle_ids:
        wanted = set(bundle_ids)
        apps = [a for a in apps if a.bundle_identifier in wanted]

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _verify(app: CatalogItem) -> VerifyResult:
        async with semaphore:
            return await verifier.verify(app, catalog_url=catalog_url, observer=observer)

    results = await asyncio.gather(*(_verify(app) for app in apps))
    failed = sum(1 for r in results if not r.verified)
    logger.info(f"Verified {len(results)} app(s), {failed} with failures")
    return list(results)


def create_verify_run(results: List[VerifyResult], catalog_url: Optional[str] = None) -> CatalogVerifyRun:
    """Wrap results with a run id and determinism hash."""
    return CatalogVerifyRun(
        catalog_url=catalog_url,
        results=results,
        results_hash=CatalogVerifyRun.compute_results_hash(results),
    )
