"""
Upstream catalog payloads.

Pydantic models that validate the JSON returned by the catalog API and
normalize its identifiers (`id` vs `product_id` vs `preset_id`) into the
canonical domain fields. Nothing past this module sees upstream naming.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from internal.domain.catalog import (
    Attribute,
    Coefficient,
    Preset,
    PresetItem,
    Product,
    Service,
    ServiceRef,
)
from internal.domain.category import Category
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


class CategoryPayload(_Payload):
    """Category as returned by GET /category."""

    id: int = Field(..., validation_alias=AliasChoices("id", "category_id"))
    name: str
    parent_id: Optional[int] = None
    description: Optional[str] = None

    def to_domain(self) -> Category:
        return Category(
            id=self.id,
            name=self.name,
            parent_id=self.parent_id,
            description=self.description,
        )


class AttributePayload(_Payload):
    """Structured product attribute `{name, unit?, value}`."""

    name: str
    value: str = ""
    unit: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_domain(self) -> Attribute:
        return Attribute(name=self.name, value=self.value, unit=self.unit or None)


class ServiceRefPayload(_Payload):
    service_id: int = Field(..., validation_alias=AliasChoices("service_id", "id"))
    name: Optional[str] = None

    def to_domain(self) -> ServiceRef:
        return ServiceRef(service_id=self.service_id, name=self.name)


class ProductPayload(_Payload):
    """Product as returned by GET /product, or embedded in a preset item."""

    product_id: int = Field(..., validation_alias=AliasChoices("product_id", "id"))
    name: str
    price: float = Field(..., ge=0)
    category_id: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    attributes: list[AttributePayload] = Field(default_factory=list)
    services: list[ServiceRefPayload] = Field(default_factory=list)

    @field_validator("attributes", mode="before")
    @classmethod
    def _structured_attributes(cls, value: Any) -> Any:
        value = _none_to_list(value)
        if not isinstance(value, list):
            raise ValueError("attributes must be a list of {name, unit, value} objects")
        return [item for item in value if isinstance(item, dict) and item.get("name")]

    @field_validator("services", mode="before")
    @classmethod
    def _services_list(cls, value: Any) -> Any:
        return _none_to_list(value)

    def to_domain(self) -> Product:
        return Product(
            product_id=self.product_id,
            name=self.name,
            price=self.price,
            category_id=self.category_id,
            description=self.description,
            image_url=self.image_url,
            attributes=[a.to_domain() for a in self.attributes],
            services=[s.to_domain() for s in self.services],
        )


class ServicePayload(_Payload):
    """Service as returned by GET /services."""

    id: int = Field(..., validation_alias=AliasChoices("id", "service_id"))
    name: str
    price: float = Field(..., ge=0)
    description: Optional[str] = None

    def to_domain(self) -> Service:
        return Service(id=self.id, name=self.name, price=self.price, description=self.description)


class PresetItemPayload(_Payload):
    """Preset item; an unusable product reference becomes None."""

    product: Optional[ProductPayload] = None

    @field_validator("product", mode="wrap")
    @classmethod
    def _broken_product_is_none(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(value)
        except ValidationError as e:
            logger.warning("Dropping unusable preset product", error_count=e.error_count())
            return None


class PresetPayload(_Payload):
    """Preset as returned by GET /presets/detailed."""

    preset_id: int = Field(..., validation_alias=AliasChoices("preset_id", "id"))
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    total_price: float = 0.0
    items: list[PresetItemPayload] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _items_list(cls, value: Any) -> Any:
        value = _none_to_list(value)
        if isinstance(value, list):
            return [item if isinstance(item, dict) else {"product": None} for item in value]
        return value

    def to_domain(self) -> Preset:
        return Preset(
            preset_id=self.preset_id,
            name=self.name,
            description=self.description,
            image_url=self.image_url,
            total_price=self.total_price,
            items=[
                PresetItem(product=item.product.to_domain() if item.product else None)
                for item in self.items
            ],
        )


class CoefficientPayload(_Payload):
    """Coefficient as returned by GET /admin/coefficients."""

    id: int = Field(..., validation_alias=AliasChoices("id", "coefficient_id"))
    name: str
    value: float

    def to_domain(self) -> Coefficient:
        return Coefficient(id=self.id, name=self.name, value=self.value)


def unwrap_list(raw: Any) -> list:
    """
    Extract the entity list from an upstream response body.

    Accepts a bare list, an envelope with a `data` or `items` list, or an
    empty body.
    """
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        for key in ("data", "items"):
            if isinstance(raw.get(key), list):
                return raw[key]
    logger.warning("Unexpected catalog list payload", payload_type=type(raw).__name__)
    return []


def _parse_many(
    raw: Any,
    model: type[_Payload],
    kind: str,
) -> Iterable[Any]:
    for index, entry in enumerate(unwrap_list(raw)):
        try:
            payload = model.model_validate(entry)
        except ValidationError as e:
            logger.warning(
                "Skipping invalid catalog entry",
                kind=kind,
                index=index,
                errors=[err["msg"] for err in e.errors()],
            )
            continue
        yield payload.to_domain()


def _parser(model: type[_Payload], kind: str) -> Callable[[Any], list]:
    def parse(raw: Any) -> list:
        return list(_parse_many(raw, model, kind))

    parse.__name__ = f"parse_{kind}"
    return parse


parse_categories: Callable[[Any], list[Category]] = _parser(CategoryPayload, "categories")
parse_products: Callable[[Any], list[Product]] = _parser(ProductPayload, "products")
parse_services: Callable[[Any], list[Service]] = _parser(ServicePayload, "services")
parse_presets: Callable[[Any], list[Preset]] = _parser(PresetPayload, "presets")
parse_coefficients: Callable[[Any], list[Coefficient]] = _parser(CoefficientPayload, "coefficients")


def parse_one(raw: Any, model: type[_Payload]) -> Any:
    """
    Validate a single entity body.

    Raises:
        pydantic.ValidationError: If the body does not match the model.
    """
    return model.model_validate(raw).to_domain()
