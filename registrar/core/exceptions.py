class ServiceError(Exception):
    """Base exception for programming errors surfaced by the service layer."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnknownEntityTypeError(ServiceError):
    """Raised when an entity type is not declared in the relationship catalog."""

    def __init__(self, entity_type: object) -> None:
        super().__init__(f"Entity type '{entity_type}' is not declared in the catalog")
        self.entity_type = entity_type
