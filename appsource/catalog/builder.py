"""
Catalog Item Builder

Synthesizes a CatalogItem from an artifact:

1. bundle identifier + display name from the manifest (mandatory)
2. download URL: override for this bundle > generic override > source
3. descriptive fields: manifest AppSource value > override > placeholder
4. categories from the manifest, unknown values dropped
5. size, creation date and sha256 computed from the artifact file
6. permissions from CapabilityExtractor, omitted when there are none

Synthesis errors (UnreadableArtifact, MissingManifestData) abort the one
artifact; create_catalog() carries on with the rest of a batch.

Version: app_catalog_v1
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..shared.hashing import DigestFunction, sha256_file
from .access import ArtifactAccessor
from .errors import (
    ArtifactDownloadError,
    CatalogError,
    ManifestReadError,
    MissingManifestData,
    UnreadableArtifact,
)
from .extract import CapabilityExtractor
from .manifest import ArchiveManifestReader, ManifestReader
from .models import (
    CATALOG_IDENTIFIER_PLACEHOLDER,
    CATALOG_NAME_PLACEHOLDER,
    DEVELOPER_NAME_PLACEHOLDER,
    LOCALIZED_DESCRIPTION_PLACEHOLDER,
    SUBTITLE_PLACEHOLDER,
    VERSION_DESCRIPTION_PLACEHOLDER,
    AppCatalog,
    AppCategory,
    CatalogItem,
    Permission,
)
from .options import CatalogSourceOptions

logger = logging.getLogger(__name__)

IDENTIFIER_KEY = "CFBundleIdentifier"
NAME_KEYS = ("CFBundleDisplayName", "CFBundleName")
VERSION_KEY = "CFBundleShortVersionString"
PRIMARY_CATEGORY_KEY = "LSApplicationCategoryType"
SECONDARY_CATEGORY_KEY = "LSApplicationSecondaryCategoryType"

# Optional manifest dictionary carrying catalog metadata supplied by the developer
APP_SOURCE_KEY = "AppSource"

# (item field, AppSource key, override list, placeholder)
DESCRIPTIVE_FIELDS: Tuple[Tuple[str, str, str, str], ...] = (
    ("subtitle", "subtitle", "app_subtitle", SUBTITLE_PLACEHOLDER),
    ("developer_name", "developerName", "app_developer_name", DEVELOPER_NAME_PLACEHOLDER),
    ("localized_description", "localizedDescription", "app_localized_description", LOCALIZED_DESCRIPTION_PLACEHOLDER),
    ("version_description", "versionDescription", "app_version_description", VERSION_DESCRIPTION_PLACEHOLDER),
)


def _string_value(manifest: Mapping[str, Any], key: str) -> Optional[str]:
    value = manifest.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def manifest_identity(manifest: Mapping[str, Any]) -> Tuple[str, str]:
    """
    Bundle identifier and display name.

    Raises:
        MissingManifestData: either field is missing or empty
    """
    bundle_identifier = _string_value(manifest, IDENTIFIER_KEY)
    if bundle_identifier is None:
        raise MissingManifestData(f"Manifest is missing {IDENTIFIER_KEY}")

    for key in NAME_KEYS:
        name = _string_value(manifest, key)
        if name is not None:
            return bundle_identifier, name

    raise MissingManifestData(
        f"Manifest for {bundle_identifier} is missing {' or '.join(NAME_KEYS)}",
        source=bundle_identifier,
    )


def manifest_categories(manifest: Mapping[str, Any]) -> List[AppCategory]:
    """Primary and secondary categories; values outside AppCategory are dropped."""
    categories: List[AppCategory] = []
    for key in (PRIMARY_CATEGORY_KEY, SECONDARY_CATEGORY_KEY):
        category = AppCategory.parse(manifest.get(key))
        if category is not None and category not in categories:
            categories.append(category)
    return categories


def artifact_stats(path: Path) -> Tuple[int, datetime]:
    """
    Byte size and creation time of an artifact file.

    Raises:
        UnreadableArtifact: the file cannot be stat'ed or is not a regular file
    """
    try:
        stat = os.stat(path)
    except OSError as e:
        raise UnreadableArtifact(f"Cannot read file at {path}", source=str(path)) from e
    if not path.is_file():
        raise UnreadableArtifact(f"Not a file: {path}", source=str(path))

    # st_birthtime only exists on some platforms
    created = getattr(stat, "st_birthtime", stat.st_ctime)
    return stat.st_size, datetime.fromtimestamp(created, tz=timezone.utc)


def build_catalog_item(
    manifest: Mapping[str, Any],
    permissions: Sequence[Permission],
    source_url: str,
    artifact_path: Path,
    options: Optional[CatalogSourceOptions] = None,
    digest: DigestFunction = sha256_file,
) -> CatalogItem:
    """
    Build a catalog item from already-extracted bundle data.

    Args:
        manifest: bundle manifest map
        permissions: output of CapabilityExtractor.extract()
        source_url: where the artifact was read from
        artifact_path: local file for size, date and digest
        options: operator overrides
        digest: file digest function

    Returns:
        CatalogItem
    """
    bundle_identifier, name = manifest_identity(manifest)
    options = options or CatalogSourceOptions()

    def default_value(field: str) -> Optional[str]:
        return options.default_value(field, bundle_identifier)

    app_source = manifest.get(APP_SOURCE_KEY)
    if not isinstance(app_source, Mapping):
        app_source = {}

    descriptive: Dict[str, str] = {}
    for field, source_key, option_field, placeholder in DESCRIPTIVE_FIELDS:
        descriptive[field] = (
            _string_value(app_source, source_key)
            or default_value(option_field)
            or placeholder
        )

    size, created = artifact_stats(artifact_path)
    try:
        checksum = digest(artifact_path)
    except OSError as e:
        raise UnreadableArtifact(f"Cannot read file at {artifact_path}", source=str(artifact_path)) from e

    return CatalogItem(
        name=name,
        bundle_identifier=bundle_identifier,
        version=_string_value(manifest, VERSION_KEY),
        size=size,
        sha256=checksum,
        download_url=default_value("app_download_url") or source_url,
        categories=manifest_categories(manifest),
        screenshot_urls=[],
        version_date=created,
        permissions=list(permissions) if permissions else None,
        **descriptive,
    )


class CatalogItemBuilder:
    """
    Creates catalog items from artifact locations (paths or URLs).
    """

    def __init__(
        self,
        reader: Optional[ManifestReader] = None,
        extractor: Optional[CapabilityExtractor] = None,
        accessor: Optional[ArtifactAccessor] = None,
        digest: DigestFunction = sha256_file,
    ):
        self.reader = reader or ArchiveManifestReader()
        self.extractor = extractor or CapabilityExtractor()
        self.accessor = accessor or ArtifactAccessor()
        self.digest = digest

    async def create(
        self,
        source: str,
        options: Optional[CatalogSourceOptions] = None,
        clear_download: bool = True,
    ) -> CatalogItem:
        """
        Synthesize the catalog item for one artifact.

        A downloaded artifact is removed afterwards unless clear_download
        is False.

        Raises:
            UnreadableArtifact: the artifact cannot be fetched, opened or parsed
            MissingManifestData: the manifest lacks identity fields
        """
        logger.info(f"Creating catalog item: {source}")
        try:
            async with self.accessor.acquire(source, clear_download=clear_download) as path:
                if not os.access(path, os.R_OK):
                    raise UnreadableArtifact(f"Cannot read file at {path}", source=source)
                try:
                    bundle = self.reader.load(path)
                except ManifestReadError as e:
                    raise UnreadableArtifact(
                        f"Cannot build catalog item from {source}: {e.message}",
                        source=source,
                    ) from e

                permissions = self.extractor.extract(bundle.manifest, bundle.entitlements)
                return build_catalog_item(
                    bundle.manifest,
                    permissions,
                    source_url=source,
                    artifact_path=path,
                    options=options,
                    digest=self.digest,
                )
        except ArtifactDownloadError as e:
            raise UnreadableArtifact(e.message, source=source) from e


async def create_catalog(
    sources: Sequence[str],
    options: Optional[CatalogSourceOptions] = None,
    builder: Optional[CatalogItemBuilder] = None,
) -> Tuple[AppCatalog, Dict[str, str]]:
    """
    Build a catalog from several artifacts.

    An artifact that fails synthesis is skipped and reported; the rest of
    the batch continues.

    Returns:
        Tuple of (catalog, {source: error message})
    """
    builder = builder or CatalogItemBuilder()
    options = options or CatalogSourceOptions()

    apps: List[CatalogItem] = []
    errors: Dict[str, str] = {}

    for source in sources:
        try:
            apps.append(await builder.create(source, options))
        except CatalogError as e:
            logger.error(f"Skipping {source}: {type(e).__name__}: {e.message}")
            errors[source] = f"{type(e).__name__}: {e.message}"

    catalog = AppCatalog(
        name=options.catalog_name or CATALOG_NAME_PLACEHOLDER,
        identifier=options.catalog_identifier or CATALOG_IDENTIFIER_PLACEHOLDER,
        platform=options.catalog_platform,
        source_url=options.catalog_source_url,
        icon_url=options.catalog_icon_url,
        localized_description=options.catalog_localized_description,
        tint_color=options.catalog_tint_color,
        apps=apps,
    )
    return catalog, errors
