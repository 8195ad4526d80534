"""
Capability Extraction

Turns a bundle manifest and its entitlement maps into the list of
permissions a catalog item must disclose:

1. every "*UsageDescription" manifest key with a string value
2. every declared background mode
3. every declared entitlement in the primary (first) entitlement map
   that is not classified harmless
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .entitlements import (
    DEFAULT_CLASSIFICATION,
    DeclarationPolicy,
    EntitlementClassification,
)
from .models import (
    USAGE_DESCRIPTION_PLACEHOLDER,
    BackgroundModePermission,
    EntitlementPermission,
    Permission,
    UsagePermission,
)

USAGE_DESCRIPTION_SUFFIX = "UsageDescription"
BACKGROUND_MODES_KEY = "UIBackgroundModes"


def usage_identifier(key: str) -> str:
    """NSCameraUsageDescription -> NSCamera"""
    if key.endswith(USAGE_DESCRIPTION_SUFFIX):
        return key[:-len(USAGE_DESCRIPTION_SUFFIX)]
    return key


def usage_descriptions(manifest: Mapping[str, Any]) -> Dict[str, str]:
    """
    Usage-description rationales keyed by stripped identifier.

    Keys without a string value are ignored.
    """
    return {
        usage_identifier(key): value
        for key, value in manifest.items()
        if isinstance(key, str)
        and key.endswith(USAGE_DESCRIPTION_SUFFIX)
        and isinstance(value, str)
    }


def background_modes(manifest: Mapping[str, Any]) -> Optional[List[str]]:
    """Declared background modes in manifest order, or None if the key is absent."""
    modes = manifest.get(BACKGROUND_MODES_KEY)
    if not isinstance(modes, (list, tuple)):
        return None
    unique: List[str] = []
    for mode in modes:
        if isinstance(mode, str) and mode not in unique:
            unique.append(mode)
    return unique


def undisclosed_entitlements(
    entitlements: Mapping[str, Any],
    classification: EntitlementClassification = DEFAULT_CLASSIFICATION,
    policy: DeclarationPolicy = DeclarationPolicy.NOT_FALSE,
) -> List[str]:
    """
    Entitlement keys that are declared and need a disclosed permission.
    """
    return [
        key
        for key, value in entitlements.items()
        if policy.is_declared(value) and classification.requires_disclosure(key)
    ]


class CapabilityExtractor:
    """
    Builds the permission list for a bundle.
    """

    def __init__(
        self,
        classification: EntitlementClassification = DEFAULT_CLASSIFICATION,
        policy: DeclarationPolicy = DeclarationPolicy.NOT_FALSE,
    ):
        self.classification = classification
        self.policy = policy

    def extract(
        self,
        manifest: Mapping[str, Any],
        entitlements: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> List[Permission]:
        """
        Args:
            manifest: bundle manifest key -> value
            entitlements: entitlement maps; the first is the active signing identity

        Returns:
            Permissions in order: usage descriptions, background modes, entitlements
        """
        permissions: List[Permission] = []

        for identifier, rationale in usage_descriptions(manifest).items():
            permissions.append(UsagePermission(
                identifier=identifier,
                usage_description=rationale,
            ))

        # rationale text for background modes is not extracted yet
        for mode in background_modes(manifest) or []:
            permissions.append(BackgroundModePermission(
                identifier=mode,
                usage_description=USAGE_DESCRIPTION_PLACEHOLDER,
            ))

        if entitlements:
            for key in undisclosed_entitlements(entitlements[0], self.classification, self.policy):
                permissions.append(EntitlementPermission(
                    identifier=key,
                    usage_description=USAGE_DESCRIPTION_PLACEHOLDER,
                ))

        return permissions
