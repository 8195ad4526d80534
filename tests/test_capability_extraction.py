"""
Capability Extraction Tests

- Usage descriptions are keyed by stripped identifier with manifest text
- Background modes get a placeholder rationale
- Only the primary entitlement map is used at synthesis time
- Harmless entitlements never need a permission
- Declaration policy decides which values count as declared

Version: app_catalog_v1
"""

import pytest

from appsource.catalog.entitlements import (
    DEFAULT_ENTITLEMENT_CATEGORIES,
    DeclarationPolicy,
    EntitlementCategory,
    EntitlementClassification,
)
from appsource.catalog.extract import (
    CapabilityExtractor,
    background_modes,
    usage_descriptions,
    usage_identifier,
)
from appsource.catalog.models import (
    USAGE_DESCRIPTION_PLACEHOLDER,
    BackgroundModePermission,
    EntitlementPermission,
    UsagePermission,
)


HARMLESS_KEYS = sorted(
    key for key, cats in DEFAULT_ENTITLEMENT_CATEGORIES.items()
    if EntitlementCategory.HARMLESS in cats
)


class TestManifestScanning:
    """Tests for manifest helpers."""

    def test_usage_identifier_strips_suffix(self):
        assert usage_identifier("NSCameraUsageDescription") == "NSCamera"
        assert usage_identifier("NSCamera") == "NSCamera"

    def test_usage_descriptions_require_string_values(self):
        manifest = {
            "NSCameraUsageDescription": "Scan documents",
            "NSLocationUsageDescription": 42,
            "CFBundleName": "Demo",
        }

        assert usage_descriptions(manifest) == {"NSCamera": "Scan documents"}

    def test_background_modes_absent(self):
        assert background_modes({}) is None

    def test_background_modes_deduplicated(self):
        assert background_modes({"UIBackgroundModes": ["audio", "audio", "fetch"]}) == ["audio", "fetch"]


class TestCapabilityExtractor:
    """Tests for the permission list built at synthesis time."""

    def test_full_extraction(self, sample_manifest, sample_entitlements):
        permissions = CapabilityExtractor().extract(sample_manifest, sample_entitlements)

        usage = [p for p in permissions if isinstance(p, UsagePermission)]
        modes = [p for p in permissions if isinstance(p, BackgroundModePermission)]
        ents = [p for p in permissions if isinstance(p, EntitlementPermission)]

        assert {p.identifier: p.usage_description for p in usage} == {
            "NSCamera": "Scan documents",
            "NSMicrophone": "Record memos",
        }
        assert [p.identifier for p in modes] == ["audio", "fetch"]
        assert all(p.usage_description == USAGE_DESCRIPTION_PLACEHOLDER for p in modes)
        assert sorted(p.identifier for p in ents) == [
            "com.apple.security.network.client",
            "keychain-access-groups",
        ]

    def test_order_is_usage_then_modes_then_entitlements(self, sample_manifest, sample_entitlements):
        permissions = CapabilityExtractor().extract(sample_manifest, sample_entitlements)

        kinds = [p.type for p in permissions]
        assert kinds == sorted(kinds, key=["usage", "background-mode", "entitlement"].index)

    def test_missing_entitlements_is_not_an_error(self, sample_manifest):
        permissions = CapabilityExtractor().extract(sample_manifest, None)

        assert not any(isinstance(p, EntitlementPermission) for p in permissions)

    def test_only_primary_entitlement_map_used(self):
        entitlements = [
            {"com.apple.security.network.client": True},
            {"com.apple.security.device.usb": True},
        ]

        permissions = CapabilityExtractor().extract({}, entitlements)

        assert [p.identifier for p in permissions] == ["com.apple.security.network.client"]

    def test_false_entitlement_not_declared(self):
        permissions = CapabilityExtractor().extract({}, [{"com.apple.security.device.camera": False}])

        assert permissions == []

    def test_unclassified_entitlement_requires_disclosure(self):
        permissions = CapabilityExtractor().extract({}, [{"com.example.custom": "yes"}])

        assert [p.identifier for p in permissions] == ["com.example.custom"]

    def test_true_only_policy(self):
        extractor = CapabilityExtractor(policy=DeclarationPolicy.TRUE_ONLY)
        entitlements = [{
            "com.apple.security.network.client": True,
            "keychain-access-groups": ["ABCDE12345.*"],
        }]

        permissions = extractor.extract({}, entitlements)

        assert [p.identifier for p in permissions] == ["com.apple.security.network.client"]

    def test_injected_classification(self):
        classification = EntitlementClassification({
            "com.apple.security.network.client": [EntitlementCategory.HARMLESS],
        })
        extractor = CapabilityExtractor(classification=classification)

        permissions = extractor.extract({}, [{"com.apple.security.network.client": True}])

        assert permissions == []

    @pytest.mark.parametrize("key", HARMLESS_KEYS)
    def test_harmless_entitlements_never_emitted(self, key):
        permissions = CapabilityExtractor().extract({}, [{key: True}])

        assert permissions == []


class TestEntitlementClassification:
    """Tests for the classification table."""

    def test_unknown_key_has_no_categories(self):
        classification = EntitlementClassification()

        assert classification.categories("com.example.unknown") == frozenset()
        assert classification.requires_disclosure("com.example.unknown")

    def test_sandbox_is_prerequisite_and_harmless(self):
        classification = EntitlementClassification()
        categories = classification.categories("com.apple.security.app-sandbox")

        assert EntitlementCategory.PREREQUISITE in categories
        assert classification.is_harmless("com.apple.security.app-sandbox")

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_ENTITLEMENT_CATEGORIES["com.example.new"] = frozenset()

    def test_declaration_policy(self):
        assert DeclarationPolicy.NOT_FALSE.is_declared("value")
        assert DeclarationPolicy.NOT_FALSE.is_declared(True)
        assert not DeclarationPolicy.NOT_FALSE.is_declared(False)
        assert DeclarationPolicy.TRUE_ONLY.is_declared(True)
        assert not DeclarationPolicy.TRUE_ONLY.is_declared("value")
