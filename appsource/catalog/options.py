"""
Catalog Source Options

Per-field override lists for catalog item synthesis. Each list holds
entries of the form "<bundle id>=<value>" or a bare value that applies to
any bundle.
"""

from typing import List, Optional, Sequence
from pydantic import BaseModel, Field


def resolve_option(entries: Sequence[str], identifier: Optional[str] = None) -> Optional[str]:
    """
    Resolve an override value for one bundle identifier.

    Resolution order (first match wins):
    1. an entry "<identifier>=<value>" -> value
    2. the first entry without "=" -> used verbatim
    3. None

    Args:
        entries: override entries in priority order
        identifier: bundle identifier to look up

    Returns:
        The resolved value, or None
    """
    if identifier is not None:
        prefix = identifier + "="
        for entry in entries:
            if entry.startswith(prefix):
                return entry[len(prefix):]

    for entry in entries:
        if "=" not in entry:
            return entry

    return None


class CatalogSourceOptions(BaseModel):
    """
    Overrides and catalog-level fields supplied by the catalog operator.
    """

    # Per-item override lists
    app_download_url: List[str] = Field(default_factory=list)
    app_subtitle: List[str] = Field(default_factory=list)
    app_developer_name: List[str] = Field(default_factory=list)
    app_localized_description: List[str] = Field(default_factory=list)
    app_version_description: List[str] = Field(default_factory=list)

    # Catalog-level fields
    catalog_name: Optional[str] = None
    catalog_identifier: Optional[str] = None
    catalog_platform: Optional[str] = None
    catalog_source_url: Optional[str] = None
    catalog_icon_url: Optional[str] = None
    catalog_localized_description: Optional[str] = None
    catalog_tint_color: Optional[str] = None

    class Config:
        extra = "forbid"

    def default_value(self, field: str, bundle_identifier: Optional[str]) -> Optional[str]:
        """Resolve the override list named by field for one bundle."""
        return resolve_option(getattr(self, field), bundle_identifier)
