"""
Layout Registry

Looks up report layout schemas by id: the loader first (normally the
database, through report_data.fetch_layout_schema), then the stock layouts.
Schemas are validated before they are cached; callers always get a copy.

The cache is an explicit TTLCache handed to the registry, never module state.
"""

import copy
import logging
import os
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import LayoutNotFoundError
from .layout_config import get_stock_layout, validate_layout

logger = logging.getLogger(__name__)

LAYOUT_CACHE_TTL = float(os.getenv("LAYOUT_CACHE_TTL", "300"))

LayoutLoader = Callable[[str], Optional[dict]]


class TTLCache:
    """Small key/value cache whose entries expire ttl seconds after set()."""

    def __init__(self, ttl: float = LAYOUT_CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[Any, Tuple[float, Any]] = {}

    def get(self, key: Any) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: Any, value: Any) -> None:
        self._entries[key] = (self.clock() + self.ttl, value)

    def delete(self, key: Any) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        now = self.clock()
        return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)


class LayoutRegistry:

    def __init__(self, loader: Optional[LayoutLoader] = None, cache: Optional[TTLCache] = None):
        self.loader = loader
        self.cache = cache if cache is not None else TTLCache()

    def get(self, layout_id: str) -> dict:
        """
        Validated schema for layout_id.

        Raises LayoutNotFoundError when neither the loader nor the stock
        layouts know the id, StructuralError when the stored schema is invalid.
        """
        cached = self.cache.get(layout_id)
        if cached is not None:
            logger.debug(f"Layout {layout_id} served from cache")
            return copy.deepcopy(cached)

        schema = self.loader(layout_id) if self.loader else None
        if schema is None:
            schema = get_stock_layout(layout_id)
        if schema is None:
            raise LayoutNotFoundError(f"Layout not found: {layout_id}")

        validate_layout(schema)
        self.cache.set(layout_id, schema)
        logger.info(f"Loaded layout {layout_id} ({len(schema.get('sections') or [])} sections)")
        return copy.deepcopy(schema)

    def invalidate(self, layout_id: Optional[str] = None) -> None:
        """Drop one cached layout, or all of them."""
        if layout_id is None:
            self.cache.clear()
        else:
            self.cache.delete(layout_id)
