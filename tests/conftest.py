"""
Shared fixtures for catalog tests.

Bundles are real .ipa-style zip archives written to tmp_path, so the
default ArchiveManifestReader is exercised end to end.
"""

import os
import plistlib
import sys
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from appsource.catalog.manifest import BundleInfo, PRIMARY_ENTITLEMENTS_NAME


# Stored (uncompressed) so tests can flip bytes without touching the manifest
BINARY_PAYLOAD = b"PAYLOAD-0123456789"


def make_ipa(
    path: Path,
    manifest: Dict[str, Any],
    entitlements: Optional[List[Dict[str, Any]]] = None,
    app_name: str = "Demo",
    compression: int = zipfile.ZIP_STORED,
    info_plist: Optional[bytes] = None,
) -> Path:
    """Write a minimal zipped iOS bundle; info_plist replaces the encoded manifest."""
    root = f"Payload/{app_name}.app"
    with zipfile.ZipFile(path, 'w', compression=compression) as zf:
        zf.writestr(f"{root}/Info.plist", info_plist if info_plist is not None else plistlib.dumps(manifest))
        for i, ent in enumerate(entitlements or []):
            name = PRIMARY_ENTITLEMENTS_NAME if i == 0 else f"extra{i}.entitlements"
            zf.writestr(f"{root}/{name}", plistlib.dumps(ent))
        zf.writestr(f"{root}/{app_name}", BINARY_PAYLOAD)
    return path


# Well-formed XML whose <date> value plistlib cannot parse
MALFORMED_DATE_PLIST = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<plist version="1.0"><dict>'
    b'<key>CFBundleIdentifier</key><string>com.example.broken</string>'
    b'<key>CFBundleName</key><string>Broken</string>'
    b'<key>BuildDate</key><date>garbage</date>'
    b'</dict></plist>'
)


def corrupt_member(path: Path, member: str, count: int = 40) -> None:
    """XOR the first bytes of a member's stored (possibly compressed) data."""
    with zipfile.ZipFile(path) as zf:
        info = zf.getinfo(member)
    data = bytearray(path.read_bytes())
    # local file header: 30 fixed bytes, then name and extra field
    name_len = int.from_bytes(data[info.header_offset + 26:info.header_offset + 28], 'little')
    extra_len = int.from_bytes(data[info.header_offset + 28:info.header_offset + 30], 'little')
    start = info.header_offset + 30 + name_len + extra_len
    for i in range(start, start + min(count, info.compress_size)):
        data[i] ^= 0xFF
    path.write_bytes(bytes(data))


class FakeReader:
    """ManifestReader returning a fixed bundle, or raising."""

    def __init__(self, bundle: Optional[BundleInfo] = None, error: Optional[Exception] = None):
        self.bundle = bundle
        self.error = error
        self.calls = 0

    def load(self, path):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.bundle


@pytest.fixture
def sample_manifest() -> Dict[str, Any]:
    return {
        "CFBundleIdentifier": "com.example.demo",
        "CFBundleDisplayName": "Demo",
        "CFBundleName": "DemoApp",
        "CFBundleShortVersionString": "1.2.3",
        "LSApplicationCategoryType": "public.app-category.productivity",
        "LSApplicationSecondaryCategoryType": "public.app-category.not-a-category",
        "NSCameraUsageDescription": "Scan documents",
        "NSMicrophoneUsageDescription": "Record memos",
        "UIBackgroundModes": ["audio", "fetch"],
    }


@pytest.fixture
def sample_entitlements() -> List[Dict[str, Any]]:
    return [{
        "application-identifier": "ABCDE12345.com.example.demo",
        "com.apple.developer.team-identifier": "ABCDE12345",
        "com.apple.security.app-sandbox": True,
        "com.apple.security.network.client": True,
        "com.apple.security.device.camera": False,
        "keychain-access-groups": ["ABCDE12345.*"],
    }]


@pytest.fixture
def ipa_path(tmp_path, sample_manifest, sample_entitlements) -> Path:
    return make_ipa(tmp_path / "demo.ipa", sample_manifest, sample_entitlements)
