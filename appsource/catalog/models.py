"""
App Catalog Models

Pydantic models for catalog items, disclosed permissions and verification
results. Attributes are snake_case; the published JSON uses the camelCase
aliases, and absent optional fields are omitted on output.

Version: app_catalog_v1
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator
import uuid

from ..shared.hashing import canonicalize_and_hash


# Placeholders written into synthesized items for fields that need manual
# completion. Consumers match on these exact strings.
SUBTITLE_PLACEHOLDER = "SUBTITLE"
DEVELOPER_NAME_PLACEHOLDER = "DEVELOPER_NAME"
LOCALIZED_DESCRIPTION_PLACEHOLDER = "LOCALIZED_DESCRIPTION"
VERSION_DESCRIPTION_PLACEHOLDER = "VERSION_DESCRIPTION"
USAGE_DESCRIPTION_PLACEHOLDER = "USAGE DESCRIPTION"
CATALOG_NAME_PLACEHOLDER = "CATALOG_NAME"
CATALOG_IDENTIFIER_PLACEHOLDER = "CATALOG_IDENTIFIER"


class AppCategory(str, Enum):
    """Closed set of application category identifiers."""
    BUSINESS = "public.app-category.business"
    DEVELOPER_TOOLS = "public.app-category.developer-tools"
    EDUCATION = "public.app-category.education"
    ENTERTAINMENT = "public.app-category.entertainment"
    FINANCE = "public.app-category.finance"
    GAMES = "public.app-category.games"
    GRAPHICS_DESIGN = "public.app-category.graphics-design"
    HEALTHCARE_FITNESS = "public.app-category.healthcare-fitness"
    LIFESTYLE = "public.app-category.lifestyle"
    MEDICAL = "public.app-category.medical"
    MUSIC = "public.app-category.music"
    NEWS = "public.app-category.news"
    PHOTOGRAPHY = "public.app-category.photography"
    PRODUCTIVITY = "public.app-category.productivity"
    REFERENCE = "public.app-category.reference"
    SOCIAL_NETWORKING = "public.app-category.social-networking"
    SPORTS = "public.app-category.sports"
    TRAVEL = "public.app-category.travel"
    UTILITIES = "public.app-category.utilities"
    VIDEO = "public.app-category.video"
    WEATHER = "public.app-category.weather"
    ACTION_GAMES = "public.app-category.action-games"
    ADVENTURE_GAMES = "public.app-category.adventure-games"
    ARCADE_GAMES = "public.app-category.arcade-games"
    BOARD_GAMES = "public.app-category.board-games"
    CARD_GAMES = "public.app-category.card-games"
    CASINO_GAMES = "public.app-category.casino-games"
    DICE_GAMES = "public.app-category.dice-games"
    EDUCATIONAL_GAMES = "public.app-category.educational-games"
    FAMILY_GAMES = "public.app-category.family-games"
    KIDS_GAMES = "public.app-category.kids-games"
    MUSIC_GAMES = "public.app-category.music-games"
    PUZZLE_GAMES = "public.app-category.puzzle-games"
    RACING_GAMES = "public.app-category.racing-games"
    ROLE_PLAYING_GAMES = "public.app-category.role-playing-games"
    SIMULATION_GAMES = "public.app-category.simulation-games"
    SPORTS_GAMES = "public.app-category.sports-games"
    STRATEGY_GAMES = "public.app-category.strategy-games"
    TRIVIA_GAMES = "public.app-category.trivia-games"
    WORD_GAMES = "public.app-category.word-games"

    @classmethod
    def parse(cls, value: Any) -> Optional["AppCategory"]:
        """Return the category for a raw value, or None if it is not in the set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class MessageKind(str, Enum):
    """Severity of an observer message."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class FailureType(str, Enum):
    """
    Verification failure vocabulary.

    These values are consumed by dashboards and CI gates; never rename them.
    """
    MISSING_CHECKSUM = "missing_checksum"
    INVALID_SIZE = "invalid_size"
    MISSING_URL = "missing_url"
    DOWNLOAD_FAILED = "download_failed"
    MISSING_FILE = "missing_file"
    SIZE_MISMATCH = "size_mismatch"
    CHECKSUM_FAILED = "checksum_failed"
    USAGE_DESCRIPTION_MISSING = "usage_description_missing"
    USAGE_DESCRIPTION_MISMATCH = "usage_description_mismatch"
    MISSING_BACKGROUND_MODE = "missing_background_mode"
    ENTITLEMENTS_MISSING = "entitlements_missing"
    MISSING_ENTITLEMENT_PERMISSION = "missing_entitlement_permission"
    BUNDLE_LOAD_FAILED = "bundle_load_failed"


# ============================================================================
# PERMISSIONS
# ============================================================================

class _PermissionBase(BaseModel):
    identifier: str = Field(..., description="Usage key, background mode or entitlement key")
    usage_description: str = Field(
        ...,
        alias="usageDescription",
        description="Human-readable reason the capability is needed"
    )

    class Config:
        frozen = True
        populate_by_name = True


class UsagePermission(_PermissionBase):
    """A usage-description key from the manifest, with the suffix stripped."""
    type: Literal["usage"] = "usage"


class BackgroundModePermission(_PermissionBase):
    """A declared background execution mode."""
    type: Literal["background-mode"] = "background-mode"


class EntitlementPermission(_PermissionBase):
    """An entitlement that is not classified as harmless."""
    type: Literal["entitlement"] = "entitlement"


Permission = Annotated[
    Union[UsagePermission, BackgroundModePermission, EntitlementPermission],
    Field(discriminator="type"),
]


# ============================================================================
# CATALOG
# ============================================================================

class CatalogItem(BaseModel):
    """
    Canonical published description of one installable artifact.

    Only name and bundle_identifier are mandatory. Items synthesized by the
    builder fill the descriptive fields with a real value or one of the
    *_PLACEHOLDER sentinels.
    """

    name: str = Field(..., description="Display name")
    bundle_identifier: str = Field(..., alias="bundleIdentifier")
    version: Optional[str] = Field(None, description="Short version string")
    size: Optional[int] = Field(None, description="Artifact size in bytes")
    sha256: Optional[str] = Field(None, description="Hex sha256 of the artifact bytes")
    download_url: Optional[str] = Field(
        None,
        alias="downloadURL",
        description="Absolute URL, file path, or reference relative to the catalog"
    )
    subtitle: Optional[str] = None
    developer_name: Optional[str] = Field(None, alias="developerName")
    localized_description: Optional[str] = Field(None, alias="localizedDescription")
    version_description: Optional[str] = Field(None, alias="versionDescription")
    version_date: Optional[datetime] = Field(None, alias="versionDate")
    icon_url: Optional[str] = Field(None, alias="iconURL")
    tint_color: Optional[str] = Field(None, alias="tintColor")
    categories: List[AppCategory] = Field(default_factory=list)
    screenshot_urls: List[str] = Field(default_factory=list, alias="screenshotURLs")
    permissions: Optional[List[Permission]] = Field(
        None,
        description="Disclosed permissions; absent when the artifact requests none"
    )

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator('categories', mode='before')
    @classmethod
    def drop_unknown_categories(cls, v):
        """Unknown category identifiers are dropped, not rejected."""
        if v is None:
            return []
        parsed = [AppCategory.parse(c) for c in v]
        return [c for c in parsed if c is not None]

    @field_validator('permissions')
    @classmethod
    def unique_permission_identifiers(cls, v):
        """Identifiers must be unique within each permission type."""
        if v is None:
            return v
        seen = set()
        for permission in v:
            key = (permission.type, permission.identifier)
            if key in seen:
                raise ValueError(
                    f"Duplicate {permission.type} permission: {permission.identifier}"
                )
            seen.add(key)
        return v

    def permissions_of(self, permission_type: type) -> Dict[str, _PermissionBase]:
        """Declared permissions of one variant, keyed by identifier."""
        return {
            p.identifier: p
            for p in (self.permissions or [])
            if isinstance(p, permission_type)
        }

    def to_json_dict(self) -> Dict[str, Any]:
        """Published JSON form (camelCase keys, absent fields omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AppCatalog(BaseModel):
    """A published source index listing catalog items."""

    name: str
    identifier: str
    platform: Optional[str] = None
    source_url: Optional[str] = Field(None, alias="sourceURL")
    icon_url: Optional[str] = Field(None, alias="iconURL")
    localized_description: Optional[str] = Field(None, alias="localizedDescription")
    tint_color: Optional[str] = Field(None, alias="tintColor")
    apps: List[CatalogItem] = Field(default_factory=list)

    class Config:
        frozen = True
        populate_by_name = True

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# VERIFICATION
# ============================================================================

class VerifyFailure(BaseModel):
    """One discrepancy between a catalog item and its artifact."""
    type: FailureType
    message: str

    class Config:
        frozen = True


class VerifyResult(BaseModel):
    """
    Outcome of verifying a single catalog item.

    failures is None when the item verified cleanly.
    """
    app: CatalogItem
    failures: Optional[List[VerifyFailure]] = None

    class Config:
        frozen = True

    @property
    def verified(self) -> bool:
        return not self.failures

    @property
    def failure_types(self) -> List[FailureType]:
        return [f.type for f in self.failures or []]

    def to_hash_dict(self) -> Dict[str, Any]:
        """Return dict suitable for deterministic hashing."""
        return {
            "bundle_identifier": self.app.bundle_identifier,
            "version": self.app.version,
            "sha256": self.app.sha256,
            "failures": [
                {"type": f.type.value, "message": f.message}
                for f in self.failures or []
            ],
        }

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CatalogVerifyRun(BaseModel):
    """
    Verification results for a whole catalog, with an audit hash.
    """

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    catalog_url: Optional[str] = None
    results: List[VerifyResult] = Field(default_factory=list)
    results_hash: str = Field(
        ...,
        description="sha256 over sorted results for determinism verification"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.verified)

    @staticmethod
    def compute_results_hash(results: List[VerifyResult]) -> str:
        """
        Deterministic hash of verification results.

        Ensures: same input -> same hash, independent of result order.
        """
        ordered = sorted(results, key=lambda r: r.app.bundle_identifier)
        return canonicalize_and_hash([r.to_hash_dict() for r in ordered])
