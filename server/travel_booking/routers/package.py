"""Package router for catalog operations."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import Caller, DatabaseSession
from ..core.security import CallerIdentity
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.package import (
    CreatePackageRequest,
    DeletePackageResponse,
    EditPackageRequest,
    GetPackageRequest,
    Package,
    PackageIdRequest,
    SearchPackagesRequest,
)
from ..services.catalog_service import CatalogService, to_package_schema
from ..services.currency_service import CurrencyRateService
from .common import json_response, run_operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/package", tags=["package"])


def get_currency_service() -> CurrencyRateService:
    """Currency-rate collaborator dependency."""
    return CurrencyRateService()


CURRENCY_DEPENDENCY = Depends(get_currency_service)


@router.post("/list", response_model=list[Package])
async def list_packages(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """List all packages, newest first."""
    catalog_service = CatalogService(db)

    packages = await run_operation("package listing", catalog_service.list_packages)
    return json_response([to_package_schema(p) for p in packages])


@router.post("/search", response_model=list[Package], responses=PROBLEM_RESPONSES)
async def search_packages(
    request: SearchPackagesRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Search packages by title or destination, price range, category and availability."""
    catalog_service = CatalogService(db)

    packages = await run_operation(
        "package search",
        lambda: catalog_service.search_packages(request),
        search=request.search,
    )
    return json_response([to_package_schema(p) for p in packages])


@router.post("/get", response_model=Package, responses=PROBLEM_RESPONSES)
async def get_package(
    request: GetPackageRequest,
    db: AsyncSession = DatabaseSession,
    rate_service: CurrencyRateService = CURRENCY_DEPENDENCY,
) -> JSONResponse:
    """
    Get a package.

    With a currency code the price is converted for display only.
    """
    catalog_service = CatalogService(db)

    package = await run_operation(
        "package retrieval",
        lambda: catalog_service.get_package(request, rate_service),
        package_id=request.package_id,
        currency=request.currency,
    )
    return json_response(package)


@router.post("/add", response_model=Package, responses=PROBLEM_RESPONSES)
async def add_package(
    request: CreatePackageRequest,
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """Add a package. Admin only."""
    catalog_service = CatalogService(db)

    package = await run_operation(
        "package creation",
        lambda: catalog_service.add_package(caller, request),
        title=request.title,
    )
    return json_response(to_package_schema(package))


@router.post("/edit", response_model=Package, responses=PROBLEM_RESPONSES)
async def edit_package(
    request: EditPackageRequest,
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """Edit a package. Admin only."""
    catalog_service = CatalogService(db)

    package = await run_operation(
        "package edit",
        lambda: catalog_service.edit_package(caller, request),
        package_id=request.package_id,
    )
    return json_response(to_package_schema(package))


@router.post("/delete", response_model=DeletePackageResponse, responses=PROBLEM_RESPONSES)
async def delete_package(
    request: PackageIdRequest,
    db: AsyncSession = DatabaseSession,
    caller: CallerIdentity = Caller,
) -> JSONResponse:
    """
    Delete a package. Admin only.

    Wishlist entries for the package are removed; bookings are kept.
    """
    catalog_service = CatalogService(db)

    response = await run_operation(
        "package deletion",
        lambda: catalog_service.delete_package(caller, request),
        package_id=request.package_id,
    )
    return json_response(response)
