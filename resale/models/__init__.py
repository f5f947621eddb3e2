from resale.models.document import Document

__all__ = ["Document"]
