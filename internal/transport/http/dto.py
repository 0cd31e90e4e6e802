"""
Data Transfer Objects for the Configurator API.

Contains Pydantic models for request/response validation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from internal.domain.catalog import MarketType


# Category DTOs
class CategoryDTO(BaseModel):
    """Flat category."""

    id: int = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")
    parent_id: Optional[int] = Field(None, description="Parent category ID, null for rooms")
    description: Optional[str] = Field(None, description="Category description")

    class Config:
        json_schema_extra = {
            "example": {"id": 2, "name": "Стены", "parent_id": 1, "description": None}
        }


class CategoryNodeDTO(CategoryDTO):
    """Category tree node with children."""

    depth: int = Field(..., description="0=room, 1=element, 2=sub-element")
    elements: List["CategoryNodeDTO"] = Field(default_factory=list, description="Room elements")
    sub_elements: List["CategoryNodeDTO"] = Field(
        default_factory=list, description="Element sub-elements"
    )


class TreeIssueDTO(BaseModel):
    """Structural problem found in the flat category list."""

    category_id: int
    kind: str = Field(..., description="orphan, too_deep, cycle or duplicate")
    detail: str


class CategoryTreeResponse(BaseModel):
    """Response with category tree."""

    roots: List[CategoryNodeDTO] = Field(..., description="Room nodes")
    issues: List[TreeIssueDTO] = Field(default_factory=list, description="Tree issues")


# Product DTOs
class AttributeDTO(BaseModel):
    """Product attribute (key-value pair)."""

    name: str = Field(..., description="Attribute name")
    value: str = Field(..., description="Attribute value")
    unit: Optional[str] = Field(None, description="Unit of measurement")

    class Config:
        json_schema_extra = {"example": {"name": "Ширина", "value": "600", "unit": "мм"}}


class ServiceRefDTO(BaseModel):
    """Service a product pairs with."""

    service_id: int
    name: Optional[str] = None


class ProductDTO(BaseModel):
    """Catalog product."""

    product_id: int = Field(..., description="Product ID")
    name: str = Field(..., description="Product name")
    price: float = Field(..., description="Unit price")
    category_id: Optional[int] = Field(None, description="Sub-element ID")
    description: Optional[str] = None
    image_url: Optional[str] = None
    attributes: List[AttributeDTO] = Field(default_factory=list)
    services: List[ServiceRefDTO] = Field(default_factory=list)


class ProductsResponse(BaseModel):
    """Products of the selected sub-element."""

    data: List[ProductDTO]
    total: int = Field(..., description="Number of products")


class ServiceDTO(BaseModel):
    """Catalog service."""

    id: int
    name: str
    price: float
    description: Optional[str] = None


class ServicesResponse(BaseModel):
    data: List[ServiceDTO]


class PresetItemDTO(BaseModel):
    """Preset entry; product is null when the reference is broken."""

    product: Optional[ProductDTO] = None


class PresetDTO(BaseModel):
    """Style preset."""

    preset_id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    total_price: float = 0.0
    items: List[PresetItemDTO] = Field(default_factory=list)


class PresetsResponse(BaseModel):
    data: List[PresetDTO]


class CoefficientDTO(BaseModel):
    """Market coefficient."""

    id: int
    name: str
    value: float


class CoefficientsResponse(BaseModel):
    data: List[CoefficientDTO]


class CatalogSummaryResponse(BaseModel):
    """Summary of the installed catalog snapshot."""

    ticket: int = Field(..., description="Refresh ticket of the snapshot")
    fetched_at: datetime
    categories: int
    products: int
    services: int
    presets: int
    coefficients: int
    tree_issues: int


# Session DTOs
class SelectionDTO(BaseModel):
    """Drill-down state."""

    stage: str = Field(..., description="empty, room_chosen, element_chosen or sub_element_chosen")
    room: Optional[CategoryDTO] = None
    element: Optional[CategoryDTO] = None
    sub_element: Optional[CategoryDTO] = None


class ProductLineDTO(BaseModel):
    product_id: int
    name: str = ""
    price: float
    quantity: int


class ServiceLineDTO(BaseModel):
    service_id: int
    name: str = ""
    price: float
    quantity: float
    unit: str = ""


class CartDTO(BaseModel):
    """Selection cart."""

    products: List[ProductLineDTO] = Field(default_factory=list)
    services: List[ServiceLineDTO] = Field(default_factory=list)


class SessionResponse(BaseModel):
    """Configurator session."""

    session_id: str = Field(..., description="Session ID")
    selection: SelectionDTO
    cart: CartDTO
    market_type: Optional[MarketType] = None
    created_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "550e8400-e29b-41d4-a716-446655440000",
                "selection": {"stage": "empty", "room": None, "element": None, "sub_element": None},
                "cart": {"products": [], "services": []},
                "market_type": None,
                "created_at": "2024-01-15T10:30:00+00:00",
            }
        }


class SelectionOptionsResponse(BaseModel):
    """Categories selectable at the current stage."""

    rooms: List[CategoryDTO]
    elements: List[CategoryDTO]
    sub_elements: List[CategoryDTO]


class LineTotalDTO(BaseModel):
    kind: str = Field(..., description="product or service")
    item_id: int
    price: float
    quantity: float
    total: float


class TotalResponse(BaseModel):
    """Pricing breakdown of the cart."""

    lines: List[LineTotalDTO]
    products_subtotal: float
    services_subtotal: float
    coefficient: float = Field(..., description="Multiplier applied to services")
    total: float

    class Config:
        json_schema_extra = {
            "example": {
                "lines": [
                    {"kind": "product", "item_id": 1, "price": 100.0, "quantity": 2, "total": 200.0},
                    {"kind": "service", "item_id": 9, "price": 50.0, "quantity": 1, "total": 60.0},
                ],
                "products_subtotal": 200.0,
                "services_subtotal": 60.0,
                "coefficient": 1.2,
                "total": 260.0,
            }
        }


# Requests
class SelectCategoryRequest(BaseModel):
    """Request body for choosing a room, element or sub-element."""

    category_id: int = Field(..., description="Category ID")


class AddProductRequest(BaseModel):
    product_id: int = Field(..., description="Product ID")


class UpdateProductRequest(BaseModel):
    """Quantity is coerced: non-numeric or below 1 becomes 1, fractions are truncated."""

    quantity: Any = Field(..., description="New quantity")


class AddServiceRequest(BaseModel):
    service_id: int = Field(..., description="Service ID")


class UpdateServiceRequest(BaseModel):
    """Omitted fields are left unchanged."""

    quantity: Any = Field(None, description="New quantity, fractions allowed")
    unit: Optional[str] = Field(None, max_length=50, description="Unit, e.g. м²")


class MarketTypeRequest(BaseModel):
    market_type: Optional[MarketType] = Field(None, description="primary, secondary or null")


class ErrorResponse(BaseModel):
    """Error response body."""

    detail: str
    request_id: Optional[str] = None


CategoryNodeDTO.model_rebuild()
