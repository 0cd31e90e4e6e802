"""
Domain-specific exceptions.

Cart, filtering, preset merging and pricing never raise; these exceptions
belong to selection preconditions and to lookups performed by the
configurator service.
"""


class DomainError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize domain error.

        Args:
            message: Error message describing the issue.
        """
        self.message = message
        super().__init__(self.message)


class DomainValidationError(DomainError):
    """Exception raised when domain validation fails."""
    pass


class InvalidSelectionError(DomainValidationError):
    """Exception raised when a category selection breaks the drill-down order."""
    pass


class EntityNotFoundError(DomainError):
    """Exception raised when a catalog entity or session is not found."""

    entity = "Entity"

    def __init__(self, entity_id: object) -> None:
        """
        Initialize not found error.

        Args:
            entity_id: The ID that was not found.
        """
        super().__init__(f"{self.entity} with ID {entity_id} not found")
        self.entity_id = entity_id


class SessionNotFoundError(EntityNotFoundError):
    entity = "Session"


class CategoryNotFoundError(EntityNotFoundError):
    entity = "Category"


class ProductNotFoundError(EntityNotFoundError):
    entity = "Product"


class ServiceNotFoundError(EntityNotFoundError):
    entity = "Service"


class PresetNotFoundError(EntityNotFoundError):
    entity = "Preset"


class CatalogUnavailableError(DomainError):
    """Exception raised when no catalog snapshot can be served."""

    def __init__(self, reason: str) -> None:
        """
        Initialize catalog unavailable error.

        Args:
            reason: Why the catalog is unavailable.
        """
        super().__init__(f"Catalog unavailable: {reason}")
        self.reason = reason
