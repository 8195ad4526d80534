"""
Entitlement Classification

Static lookup from entitlement key to risk categories. An entitlement
classified HARMLESS never needs a disclosed permission; everything else,
including keys missing from the table, does.

The table is immutable and passed into the extractor and verifier as a
dependency, so tests can supply their own.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, Optional


class EntitlementCategory(str, Enum):
    """Risk category of an entitlement."""
    PREREQUISITE = "prerequisite"  # required by all apps
    HARMLESS = "harmless"
    ASSETS = "assets"
    READ_FILE = "readFile"
    WRITE_FILE = "writeFile"
    NETWORK = "network"
    DEVICE = "device"
    MISC = "misc"
    PERSONAL_INFORMATION = "personal_information"
    VOLATILE = "volatile"  # low-level system


class DeclarationPolicy(str, Enum):
    """
    Which entitlement values count as "declared".

    NOT_FALSE: anything other than boolean false (strings, arrays, true)
    TRUE_ONLY: only boolean true
    """
    NOT_FALSE = "not_false"
    TRUE_ONLY = "true_only"

    def is_declared(self, value: Any) -> bool:
        if self is DeclarationPolicy.TRUE_ONLY:
            return value is True
        return value is not False


_C = EntitlementCategory
_RW = frozenset([_C.READ_FILE, _C.WRITE_FILE])
_ASSETS = frozenset([_C.ASSETS, _C.READ_FILE, _C.WRITE_FILE])

_SECURITY = "com.apple.security."
_TEMPORARY = "com.apple.security.temporary-exception."

DEFAULT_ENTITLEMENT_CATEGORIES: Mapping[str, FrozenSet[EntitlementCategory]] = MappingProxyType({
    "application-identifier": frozenset([_C.HARMLESS]),
    "com.apple.developer.team-identifier": frozenset([_C.HARMLESS]),

    _SECURITY + "app-sandbox": frozenset([_C.PREREQUISITE, _C.HARMLESS]),
    _SECURITY + "cs.allow-jit": frozenset([_C.HARMLESS]),
    _SECURITY + "cs.debugger": frozenset([_C.VOLATILE]),
    _SECURITY + "cs.allow-unsigned-executable-memory": frozenset([_C.VOLATILE]),
    _SECURITY + "cs.allow-dyld-environment-variables": frozenset([_C.VOLATILE]),
    # ad-hoc signed executables cannot link embedded frameworks without it
    _SECURITY + "cs.disable-library-validation": frozenset([_C.HARMLESS]),
    _SECURITY + "cs.disable-executable-page-protection": frozenset([_C.VOLATILE]),

    _SECURITY + "network.client": frozenset([_C.NETWORK]),
    _SECURITY + "network.server": frozenset([_C.NETWORK]),

    _SECURITY + "files.all": _RW,
    _SECURITY + "files.user-selected.read-write": _RW,
    _SECURITY + "files.user-selected.read-only": frozenset([_C.READ_FILE]),
    _SECURITY + "files.user-selected.executable": _RW,
    _SECURITY + "files.downloads.read-only": frozenset([_C.READ_FILE]),
    _SECURITY + "files.downloads.read-write": _RW,
    _SECURITY + "files.bookmarks.app-scope": frozenset([_C.HARMLESS]),
    _SECURITY + "files.bookmarks.document-scope": frozenset([_C.HARMLESS]),

    _SECURITY + "print": frozenset([_C.DEVICE]),
    _SECURITY + "scripting-targets": frozenset([_C.HARMLESS]),
    _SECURITY + "application-groups": frozenset([_C.HARMLESS]),

    _SECURITY + "assets.pictures.read-only": _ASSETS,
    _SECURITY + "assets.pictures.read-write": _ASSETS,
    _SECURITY + "assets.music.read-only": _ASSETS,
    _SECURITY + "assets.music.read-write": _ASSETS,
    _SECURITY + "assets.movies.read-only": _ASSETS,
    _SECURITY + "assets.movies.read-write": _ASSETS,

    _SECURITY + "personal-information.location": frozenset([_C.PERSONAL_INFORMATION]),
    _SECURITY + "personal-information.addressbook": frozenset([_C.PERSONAL_INFORMATION]),
    _SECURITY + "personal-information.calendars": frozenset([_C.PERSONAL_INFORMATION]),

    _SECURITY + "device.camera": frozenset([_C.DEVICE]),
    _SECURITY + "device.microphone": frozenset([_C.DEVICE]),
    _SECURITY + "device.usb": frozenset([_C.DEVICE]),
    _SECURITY + "device.serial": frozenset([_C.DEVICE]),
    _SECURITY + "device.firewire": frozenset([_C.DEVICE]),
    _SECURITY + "device.bluetooth": frozenset([_C.DEVICE]),
    _SECURITY + "device.audio-input": frozenset([_C.DEVICE]),
    _SECURITY + "device.audio-video-bridging": frozenset([_C.DEVICE]),

    _TEMPORARY + "files.home-relative-path.read-only": frozenset([_C.READ_FILE]),
    _TEMPORARY + "files.home-relative-path.read-write": _RW,
    _TEMPORARY + "files.absolute-path.read-only": frozenset([_C.READ_FILE]),
    _TEMPORARY + "files.absolute-path.read-write": _RW,
    _TEMPORARY + "apple-events": frozenset([_C.MISC]),
    _TEMPORARY + "audio-unit-host": frozenset([_C.MISC]),
    _TEMPORARY + "iokit-user-client-class": frozenset([_C.MISC]),
    _TEMPORARY + "mach-lookup.global-name": frozenset([_C.MISC]),
    _TEMPORARY + "mach-register.global-name": frozenset([_C.MISC]),
    _TEMPORARY + "shared-preference.read-only": _RW,
    _TEMPORARY + "shared-preference.read-write": _RW,
})


class EntitlementClassification:
    """
    Read-only entitlement classifier.
    """

    def __init__(self, table: Optional[Mapping[str, FrozenSet[EntitlementCategory]]] = None):
        """
        Args:
            table: entitlement key -> categories (defaults to the built-in table)
        """
        source = DEFAULT_ENTITLEMENT_CATEGORIES if table is None else table
        self._table = MappingProxyType({k: frozenset(v) for k, v in source.items()})

    def categories(self, entitlement: str) -> FrozenSet[EntitlementCategory]:
        """Categories for an entitlement key; unknown keys are unclassified."""
        return self._table.get(entitlement, frozenset())

    def is_harmless(self, entitlement: str) -> bool:
        return EntitlementCategory.HARMLESS in self.categories(entitlement)

    def requires_disclosure(self, entitlement: str) -> bool:
        return not self.is_harmless(entitlement)

    def __contains__(self, entitlement: str) -> bool:
        return entitlement in self._table

    def __len__(self) -> int:
        return len(self._table)


DEFAULT_CLASSIFICATION = EntitlementClassification()
