"""Category resolution package."""

from fintrack.categories.resolver import CategoryResolver

__all__ = ["CategoryResolver"]
