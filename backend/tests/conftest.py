"""Pytest configuration and shared fixtures."""

import copy
import io

import httpx
import pytest
from PIL import Image

from report_engine.pdf.images import ImageFetcher


PHOTO_URL_1 = "https://storage.test/photos/p1.png"
PHOTO_URL_2 = "https://storage.test/photos/p2.png"
PHOTO_URL_3 = "https://storage.test/photos/p3.png"
SIGNATURE_URL = "https://storage.test/signatures/s1.png"
BROKEN_URL = "https://storage.test/photos/missing.png"


@pytest.fixture
def anyio_backend():
    return "asyncio"


# =============================================================================
# IMAGES
# =============================================================================

def make_png(size=(40, 30), color=(200, 30, 30), mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def image_fetcher(png_bytes):
    """ImageFetcher whose client serves PNGs for storage.test and 404 for missing.png."""
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.path.endswith("missing.png"):
            return httpx.Response(404)
        return httpx.Response(200, content=png_bytes, headers={"Content-Type": "image/png"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    fetcher = ImageFetcher(client=client)
    fetcher.requested = requested
    return fetcher


# =============================================================================
# RECORDS
# =============================================================================

TEMPLATE = {
    "template_name": "PMC Daily Inspection",
    "contract_category": "preventive-maintenance",
    "fields_schema": {
        "sections": [
            {
                "section_id": "site_info",
                "section_name": "Site Information",
                "fields": [
                    {"field_id": "location", "field_name": "Location", "field_type": "text", "required": True},
                    {"field_id": "equipment", "field_name": "Equipment", "field_type": "text"},
                    {"field_id": "inspection_date", "field_name": "Inspection Date", "field_type": "date"},
                ],
            },
            {
                "section_id": "work_details",
                "section_name": "Work Details",
                "fields": [
                    {"field_id": "observations", "field_name": "Observations", "field_type": "textarea"},
                    {"field_id": "hours", "field_name": "Hours Worked", "field_type": "number"},
                    {"field_id": "result", "field_name": "Result", "field_type": "select"},
                ],
            },
            {
                "section_id": "checks",
                "section_name": "Safety Checks",
                "fields": [
                    {"field_id": "ppe", "field_name": "PPE Worn", "field_type": "checkbox"},
                    {"field_id": "lockout", "field_name": "Lockout Applied", "field_type": "checkbox"},
                ],
            },
            {
                "section_id": "photos",
                "section_name": "Photos",
                "fields": [
                    {"field_id": "before", "field_name": "Photos Before Work", "field_type": "photo"},
                    {"field_id": "after", "field_name": "Photos After Work", "field_type": "photo"},
                ],
            },
            {
                "section_id": "sign_off",
                "section_name": "Sign Off",
                "fields": [
                    {"field_id": "technician_name", "field_name": "Technician Name", "field_type": "text"},
                    {"field_id": "worker_signature", "field_name": "Worker Signature", "field_type": "signature"},
                ],
            },
        ]
    },
    "pdf_layout": {
        "page_size": "A4",
        "orientation": "portrait",
        "sections": [
            {"section_id": "site_info", "layout": "two_column"},
            {"section_id": "work_details", "layout": "single_column"},
            {"section_id": "checks", "layout": "checklist"},
            {"section_id": "photos", "layout": "photo_grid", "columns": 2},
            {"section_id": "sign_off", "layout": "signature_box"},
        ],
    },
}

RECORD = {
    "id": "entry-1",
    "entry_date": "2026-02-05",
    "shift": "Day",
    "status": "submitted",
    "created_by": "user-1",
    "created_by_profile": {"id": "user-1", "full_name": "Ahmad bin Hassan", "role": "technician"},
    "contract": {
        "contract_number": "PMC/2026/001",
        "contract_name": "Chiller Maintenance",
        "contract_type": "comprehensive",
        "contract_category": "preventive-maintenance",
        "valid_from": "2026-01-01",
        "valid_until": "2026-12-31",
        "project": {
            "project_name": "KLCC Tower",
            "client_name": "Petronas",
            "site_address": "Jalan Ampang, Kuala Lumpur",
            "organization": {"name": "Bina Jaya Sdn Bhd"},
        },
    },
    "template": TEMPLATE,
    "data": {
        "site_info.location": "Level 3 Plant Room",
        "site_info.equipment": "Chiller CH-01",
        "site_info.inspection_date": "2026-02-05",
        "work_details.observations": "Compressor running normally.",
        "work_details.hours": 6,
        "work_details.result": "pass",
        "checks.ppe": True,
        "checks.lockout": False,
        "photos.before": ["att-photo-1", "att-photo-2"],
        "sign_off.technician_name": "Ravi Kumar",
        "sign_off.worker_signature": "att-sig-1",
    },
    "attachments": [
        {
            "id": "att-photo-1",
            "work_entry_id": "entry-1",
            "field_id": "photos.before",
            "file_type": "photo",
            "storage_url": PHOTO_URL_1,
            "file_name": "p1.png",
            "created_at": "2026-02-05T09:15:00+00:00",
        },
        {
            "id": "att-photo-2",
            "work_entry_id": "entry-1",
            "field_id": "photos.before",
            "file_type": "photo",
            "storage_url": PHOTO_URL_2,
            "file_name": "p2.png",
            "created_at": "2026-02-05T09:16:00+00:00",
        },
        {
            "id": "att-photo-3",
            "work_entry_id": "entry-1",
            "field_id": "photos.after",
            "file_type": "photo",
            "storage_url": PHOTO_URL_3,
            "file_name": "p3.png",
            "created_at": "2026-02-05T15:40:00+00:00",
        },
        {
            "id": "att-sig-1",
            "work_entry_id": "entry-1",
            "field_id": "sign_off.worker_signature",
            "file_type": "signature",
            "storage_url": SIGNATURE_URL,
            "file_name": "s1.png",
            "created_at": "2026-02-05T17:27:00+00:00",
        },
    ],
}


@pytest.fixture
def record() -> dict:
    return copy.deepcopy(RECORD)


@pytest.fixture
def record_without_attachments(record) -> dict:
    record["attachments"] = []
    record["data"].pop("photos.before")
    record["data"].pop("sign_off.worker_signature")
    return record


# =============================================================================
# LAYOUTS
# =============================================================================

@pytest.fixture
def schema() -> dict:
    """Self-describing layout touching every block type."""
    return {
        "page": {"size": "A4", "orientation": "portrait", "margins": {"top": 20, "right": 20, "bottom": 20, "left": 20}},
        "sections": [
            {
                "section_id": "header",
                "block_type": "header",
                "content": {"title": "Inspection Report", "subtitle": "Chiller Plant"},
                "binding_rules": {},
                "options": {"showLogo": True},
            },
            {
                "section_id": "site",
                "block_type": "detail_entry",
                "binding_rules": {"template_section": "site_info"},
                "options": {"columns": 2, "title": "Site Information"},
                "layout": "two_column",
            },
            {
                "section_id": "notes",
                "block_type": "text_section",
                "binding_rules": {"source": "data.work_details.observations"},
                "options": {"title": "Observations"},
            },
            {
                "section_id": "summary",
                "block_type": "metrics_cards",
                "binding_rules": {"metrics": [
                    {"label": "Hours", "template_section": "work_details", "field": "hours", "unit": "h"},
                    {"label": "Result", "template_section": "work_details", "field": "result"},
                ]},
                "options": {"columns": 2},
            },
            {
                "section_id": "photos",
                "block_type": "photo_grid",
                "binding_rules": {},
                "options": {"columns": 2, "title": "Photo Documentation"},
            },
            {
                "section_id": "signatures",
                "block_type": "signature_box",
                "binding_rules": {},
                "options": {"title": "Signatures"},
            },
        ],
    }
