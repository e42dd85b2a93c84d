"""
Shared router helpers: error translation and PDF responses.
"""

import io
import logging
from contextlib import contextmanager

from fastapi import HTTPException
from fastapi.responses import StreamingResponse

from report_engine.errors import LayoutNotFoundError, StructuralError

logger = logging.getLogger(__name__)


@contextmanager
def report_errors():
    """StructuralError -> 400 with the validation errors, LayoutNotFoundError -> 404."""
    try:
        yield
    except StructuralError as e:
        logger.error(f"Invalid layout: {e}")
        raise HTTPException(status_code=400, detail={"message": "Invalid layout", "errors": e.errors})
    except LayoutNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def pdf_response(pdf_bytes: bytes, filename: str) -> StreamingResponse:
    pdf_buffer = io.BytesIO(pdf_bytes)
    return StreamingResponse(pdf_buffer, media_type="application/pdf", headers={"Content-Disposition": f"inline; filename={filename}"})
