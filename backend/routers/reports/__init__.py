"""
Reports Router Package

Combines all report-related routers:
- render: render tree, HTML preview and PDF for posted entries
- layouts: layout schema validation and stock layouts
- entries: stored work entries as HTML / PDF
"""

from fastapi import APIRouter

from .render import router as render_router
from .layouts import router as layouts_router
from .entries import router as entries_router

router = APIRouter()

router.include_router(render_router, tags=["reports-render"])
router.include_router(layouts_router, tags=["reports-layouts"])
router.include_router(entries_router, tags=["reports-entries"])
