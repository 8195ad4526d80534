"""
Bundle Manifest Reading

The verifier and builder only need two things from an artifact: its
manifest map and its entitlement maps. ManifestReader is that narrow
interface; ArchiveManifestReader is the implementation used by default.

Supported layouts:
- zipped iOS bundle:   Payload/<Name>.app/Info.plist
- zipped macOS bundle: <Name>.app/Contents/Info.plist

Entitlements are read from property lists stored in the bundle root
("*.xcent" or "*.entitlements"). archived-expanded-entitlements.xcent,
when present, is the primary map.
"""

import logging
import plistlib
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from .errors import ManifestReadError

logger = logging.getLogger(__name__)

PRIMARY_ENTITLEMENTS_NAME = "archived-expanded-entitlements.xcent"
ENTITLEMENT_SUFFIXES = (".xcent", ".entitlements")


@dataclass(frozen=True)
class BundleInfo:
    """Manifest and entitlement maps read from one artifact."""
    manifest: Dict[str, Any]
    # None when the bundle carries no entitlements at all
    entitlements: Optional[List[Dict[str, Any]]] = None


class ManifestReader(Protocol):
    def load(self, path: Path) -> BundleInfo:
        """Read the bundle at path; raise ManifestReadError on failure."""
        ...


def _parse_plist(data: bytes, name: str) -> Dict[str, Any]:
    try:
        value = plistlib.loads(data)
    except Exception as e:
        # plistlib surfaces malformed values as assorted builtin errors
        raise ManifestReadError(f"Invalid property list {name}: {e}", source=name) from e
    if not isinstance(value, dict):
        raise ManifestReadError(f"Property list {name} is not a dictionary", source=name)
    return value


def _entitlement_order(name: str) -> Tuple[int, str]:
    return (0 if PurePosixPath(name).name == PRIMARY_ENTITLEMENTS_NAME else 1, name)


class ArchiveManifestReader:
    """
    Reads Info.plist and entitlement plists from zipped bundles.
    """

    def load(self, path: Union[str, Path]) -> BundleInfo:
        path = Path(path)
        try:
            with zipfile.ZipFile(path) as archive:
                return self._load_archive(archive, str(path))
        except zipfile.BadZipFile as e:
            raise ManifestReadError(f"Not a bundle archive: {path}", source=str(path)) from e
        except OSError as e:
            raise ManifestReadError(f"Cannot read {path}: {e}", source=str(path)) from e
        except ManifestReadError:
            raise
        except Exception as e:
            # corrupt members raise zlib.error, EOFError, NotImplementedError, ...
            raise ManifestReadError(f"Corrupt bundle archive {path}: {e}", source=str(path)) from e

    def _load_archive(self, archive: zipfile.ZipFile, source: str) -> BundleInfo:
        names = archive.namelist()
        info_name = self._find_info_plist(names)
        if info_name is None:
            raise ManifestReadError(f"No Info.plist found in {source}", source=source)

        root = self._bundle_root(PurePosixPath(info_name))
        manifest = _parse_plist(archive.read(info_name), info_name)

        entitlement_names = sorted(
            (
                n for n in names
                if PurePosixPath(n).parent == root and n.endswith(ENTITLEMENT_SUFFIXES)
            ),
            key=_entitlement_order,
        )
        logger.debug(f"Read {info_name} with {len(entitlement_names)} entitlement file(s) from {source}")

        if not entitlement_names:
            return BundleInfo(manifest=manifest, entitlements=None)
        return BundleInfo(
            manifest=manifest,
            entitlements=[_parse_plist(archive.read(n), n) for n in entitlement_names],
        )

    @staticmethod
    def _find_info_plist(names: List[str]) -> Optional[str]:
        candidates = []
        for name in names:
            parts = PurePosixPath(name).parts
            if len(parts) == 3 and parts[0] == "Payload" and parts[1].endswith(".app") and parts[2] == "Info.plist":
                candidates.append(name)
            elif len(parts) == 3 and parts[0].endswith(".app") and parts[1] == "Contents" and parts[2] == "Info.plist":
                candidates.append(name)
        return sorted(candidates)[0] if candidates else None

    @staticmethod
    def _bundle_root(info_path: PurePosixPath) -> PurePosixPath:
        parent = info_path.parent
        return parent.parent if parent.name == "Contents" else parent
