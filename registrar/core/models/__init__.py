from registrar.core.models.document import Document

__all__ = [
    "Document",
]
