"""
Report Engine Errors

StructuralError is the only error allowed to abort a render. Everything else
(missed bindings, failed image embeds, odd show_if conditions) degrades to a
placeholder inside the document.
"""

from typing import List, Optional


class ReportEngineError(Exception):
    """Base class for report engine failures."""


class StructuralError(ReportEngineError, ValueError):
    """Layout schema cannot produce a document (missing ids, types, page config)."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class LayoutNotFoundError(ReportEngineError, LookupError):
    """No active layout exists for the requested id."""


class ImageEmbedError(ReportEngineError):
    """A remote image could not be fetched or decoded."""
