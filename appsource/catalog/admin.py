"""
Catalog Admin Endpoints

Create catalog items from artifacts and verify published catalogs.

Security: Requires ADMIN_API_KEY header for all endpoints except /health.

Version: app_catalog_v1
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Header, HTTPException, Depends
from pydantic import BaseModel, Field

from .. import config
from .builder import create_catalog
from .errors import ArtifactDownloadError, CatalogError
from .models import AppCatalog
from .options import CatalogSourceOptions
from .verify import create_verify_run, load_catalog, verify_catalog

logger = logging.getLogger(__name__)


# Router
router = APIRouter(
    prefix="/api/v1/admin/catalog",
    tags=["admin", "catalog"],
)


# Security
def verify_admin_key(x_admin_api_key: str = Header(None, alias="X-Admin-API-Key")) -> str:
    """
    Verify admin API key from header.

    Raises 401 if missing or invalid.
    """
    expected_key = os.environ.get("ADMIN_API_KEY")

    if not expected_key:
        # Dev mode when ADMIN_API_KEY is not set
        return "dev_mode"

    if not x_admin_api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing X-Admin-API-Key header"
        )

    if x_admin_api_key != expected_key:
        raise HTTPException(
            status_code=401,
            detail="Invalid admin API key"
        )

    return x_admin_api_key


# Request / response models
class CreateCatalogRequest(BaseModel):
    """Artifacts to catalog."""
    sources: List[str] = Field(..., min_length=1, description="Paths or URLs of .ipa/.zip artifacts")
    options: Optional[CatalogSourceOptions] = None


class CreateCatalogResponse(BaseModel):
    """Synthesized catalog and per-source errors."""
    success: bool
    catalog: Dict[str, Any]
    errors: Dict[str, str] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class VerifyCatalogRequest(BaseModel):
    """Catalog to verify, either inline or by location."""
    catalog_url: Optional[str] = None
    catalog: Optional[AppCatalog] = None
    bundle_ids: List[str] = Field(default_factory=list)
    concurrency: int = Field(default=config.VERIFY_CONCURRENCY, ge=1, le=32)


class VerifyCatalogResponse(BaseModel):
    """Verification results for a catalog."""
    success: bool
    run_id: str
    results_hash: str
    total_apps: int
    failed_apps: int
    results: List[Dict[str, Any]]
    generated_at: datetime = Field(default_factory=datetime.utcnow)


# Endpoints

@router.post("/items", response_model=CreateCatalogResponse)
async def create_items(
    request: CreateCatalogRequest,
    admin_key: str = Depends(verify_admin_key)
):
    """
    Create a catalog from the given artifacts.

    Artifacts that cannot be synthesized are reported in errors and left
    out of the catalog.
    """
    try:
        catalog, errors = await create_catalog(request.sources, request.options)
    except Exception as e:
        logger.error(f"Catalog creation error: {e}")
        raise HTTPException(status_code=500, detail=f"Catalog creation error: {str(e)}")

    return CreateCatalogResponse(
        success=not errors,
        catalog=catalog.to_json_dict(),
        errors=errors,
    )


@router.post("/verify", response_model=VerifyCatalogResponse)
async def verify_items(
    request: VerifyCatalogRequest,
    admin_key: str = Depends(verify_admin_key)
):
    """
    Verify every app in a catalog against its artifact.

    success is False when any app has failures; the per-app failure lists
    are in results.
    """
    if request.catalog is None and not request.catalog_url:
        raise HTTPException(status_code=422, detail="Either catalog or catalog_url is required")

    try:
        catalog = request.catalog or await load_catalog(request.catalog_url)
        results = await verify_catalog(
            catalog,
            catalog_url=request.catalog_url,
            bundle_ids=request.bundle_ids,
            concurrency=request.concurrency,
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ArtifactDownloadError as e:
        raise HTTPException(status_code=502, detail=e.message)
    except CatalogError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except Exception as e:
        logger.error(f"Catalog verification error: {e}")
        raise HTTPException(status_code=500, detail=f"Verification error: {str(e)}")

    run = create_verify_run(results, request.catalog_url)

    return VerifyCatalogResponse(
        success=run.failed_count == 0,
        run_id=run.run_id,
        results_hash=run.results_hash,
        total_apps=len(run.results),
        failed_apps=run.failed_count,
        results=[r.to_json_dict() for r in run.results],
    )


@router.get("/health")
async def catalog_health():
    """
    Health check for the catalog module.

    Does not require admin key.
    """
    return {
        "status": "ok",
        "module": "app_catalog",
        "version": "app_catalog_v1",
        "timestamp": datetime.utcnow().isoformat(),
    }
