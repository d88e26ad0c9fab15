"""Domain entities."""

from objectstore.domain.entities.record import ContentStream, ListPage, ObjectRecord

__all__ = ["ContentStream", "ListPage", "ObjectRecord"]
