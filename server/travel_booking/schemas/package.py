"""Travel package Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models.package import PackageCategory


class CreatePackageRequest(BaseModel):
    """Request schema for adding a travel package."""

    title: str = Field(..., min_length=1, max_length=255, description="Package title")
    description: str = Field(..., min_length=1, max_length=5000, description="Package description")
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2, description="Package price")
    duration: str = Field(..., min_length=1, max_length=100, description="Trip duration, e.g. '7 days'")
    destination: str = Field(..., min_length=1, max_length=255, description="Trip destination")
    category: PackageCategory = Field(..., description="Package category")
    availability: int = Field(..., ge=0, description="Number of slots available")


class EditPackageRequest(CreatePackageRequest):
    """Request schema for editing a travel package."""

    package_id: str = Field(..., description="Package to edit")


class PackageIdRequest(BaseModel):
    """Request schema addressing a single package."""

    package_id: str = Field(..., description="Package ID")


class GetPackageRequest(PackageIdRequest):
    """Request schema for reading a package, optionally priced in another currency."""

    currency: str | None = Field(None, description="ISO 4217 code to convert the price into")


class PackageFilter(BaseModel):
    """Structured filters for package search."""

    min_price: Decimal | None = Field(None, ge=0, description="Minimum price")
    max_price: Decimal | None = Field(None, ge=0, description="Maximum price")
    category: str | None = Field(None, description="Category, matched case-insensitively")
    availability: int | None = Field(None, ge=0, description="Minimum availability")


class SearchPackagesRequest(BaseModel):
    """Request schema for searching packages."""

    search: str | None = Field(None, description="Substring matched against title or destination")
    filter: PackageFilter | None = Field(None, description="Structured filters")


class Package(BaseModel):
    """Travel package response schema."""

    id: str = Field(..., description="Unique package ID")
    title: str = Field(..., description="Package title")
    description: str = Field(..., description="Package description")
    price: float = Field(..., ge=0, description="Package price")
    duration: str = Field(..., description="Trip duration")
    destination: str = Field(..., description="Trip destination")
    category: str = Field(..., description="Package category")
    availability: int = Field(..., ge=0, description="Number of slots available")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")

    model_config = ConfigDict(from_attributes=True)


class DeletePackageResponse(BaseModel):
    """Response schema for package deletion."""

    id: str = Field(..., description="Deleted package ID")
    success: bool = Field(True, description="Whether the package was deleted")
    message: str = Field(..., description="Human-readable outcome")
