import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app
from routers.reports import entries


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stored(monkeypatch, record_without_attachments, schema):
    """Replaces the database reads of the entries router."""
    loaded = {"layout_ids": []}

    def fetch_records(db, entry_ids):
        return [record_without_attachments] if "entry-1" in entry_ids else []

    def fetch_layout_schema(db, layout_id):
        loaded["layout_ids"].append(layout_id)
        return schema if layout_id == "site-inspection" else None

    monkeypatch.setattr(entries, "fetch_records", fetch_records)
    monkeypatch.setattr(entries, "fetch_layout_schema", fetch_layout_schema)
    return loaded


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_render_tree(client, schema, record):
    response = client.post("/api/reports/render-tree", json={"layout": schema, "record": record})

    assert response.status_code == 200
    tree = response.json()
    assert tree["metadata"]["contract"]["number"] == "PMC/2026/001"
    assert [block["blockId"] for block in tree["blocks"]][0] == "header"


def test_render_tree_invalid_layout(client, record):
    layout = {"page": {}, "sections": [{"block_type": "header"}]}
    response = client.post("/api/reports/render-tree", json={"layout": layout, "record": record})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid layout"
    assert detail["errors"] == ["Section 0 missing required field 'section_id'"]


def test_render_tree_non_string_block_type(client, record):
    layout = {"page": {}, "sections": [{"section_id": "a", "block_type": ["two_column"]}]}
    response = client.post("/api/reports/render-tree", json={"layout": layout, "record": record})

    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == ["Section 'a' block_type must be a string"]


def test_preview(client, schema, record):
    response = client.post("/api/reports/preview", json={"records": [record, record], "layout": schema})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert response.text.count('class="page-preview"') == 2


def test_preview_requires_records(client):
    assert client.post("/api/reports/preview", json={"records": []}).status_code == 422


def test_pdf(client, schema, record_without_attachments):
    response = client.post("/api/reports/pdf", json={"records": [record_without_attachments], "layout": schema})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "WorkLedger_PMC-2026-001_" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


class TestLayouts:

    def test_validate_collects_all_errors(self, client):
        layout = {"sections": [{"section_id": "a"}, {"section_id": "a", "block_type": "header"}]}
        body = client.post("/api/reports/layouts/validate", json={"layout": layout}).json()

        assert body["valid"] is False
        assert body["errors"] == [
            "Missing 'page' configuration",
            "Section 'a' missing required field 'block_type'",
            "Duplicate section_id: 'a'",
        ]

    def test_validate_ok(self, client, schema):
        assert client.post("/api/reports/layouts/validate", json={"layout": schema}).json() == {"valid": True, "errors": []}

    def test_generate(self, client, record):
        response = client.post("/api/reports/layouts/generate", json={"template": record["template"]})

        assert response.status_code == 200
        body = response.json()
        assert body["suggestedName"] == "PMC Daily Inspection - Layout"
        assert body["summary"]["photoSections"] == 2
        assert body["layout"]["sections"][0]["section_id"] == "header"

    def test_generate_without_fields_schema(self, client):
        response = client.post("/api/reports/layouts/generate", json={"template": {"template_name": "Empty"}})

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == ["Template has no valid fields_schema"]

    def test_stock_list(self, client):
        ids = [layout["layout_id"] for layout in client.get("/api/reports/layouts/stock").json()]
        assert ids == ["minimal_report", "photo_focused", "daily_report"]

    def test_stock_layout(self, client):
        response = client.get("/api/reports/layouts/stock/photo_focused")
        assert response.status_code == 200
        assert response.json()["sections"][0]["section_id"] == "header"

    def test_unknown_stock_layout(self, client):
        assert client.get("/api/reports/layouts/stock/nope").status_code == 404


class TestEntries:

    def test_entry_html_default_layout(self, client, stored):
        response = client.get("/api/reports/entries/entry-1/html")

        assert response.status_code == 200
        assert "Level 3 Plant Room" in response.text
        assert stored["layout_ids"] == []

    def test_entry_html_stored_layout(self, client, stored):
        response = client.get("/api/reports/entries/entry-1/html", params={"layout_id": "site-inspection"})

        assert response.status_code == 200
        assert "Inspection Report" in response.text
        assert stored["layout_ids"] == ["site-inspection"]

    def test_entry_html_unknown_layout(self, client, stored):
        response = client.get("/api/reports/entries/entry-1/html", params={"layout_id": "nope"})
        assert response.status_code == 404

    def test_entry_not_found(self, client, stored):
        assert client.get("/api/reports/entries/entry-9/html").status_code == 404

    def test_entries_pdf(self, client, stored):
        response = client.post("/api/reports/entries/pdf", json={"entry_ids": ["entry-1"]})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_entries_pdf_none_found(self, client, stored):
        response = client.post("/api/reports/entries/pdf", json={"entry_ids": ["entry-9"]})
        assert response.status_code == 404
