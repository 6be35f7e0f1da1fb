"""Data models for the element table."""

from bimqa.models.element import Attribute, ElementRow, PropertyEntry, PropertyMap

__all__ = ["Attribute", "ElementRow", "PropertyEntry", "PropertyMap"]
