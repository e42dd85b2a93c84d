import base64
import io

import pytest
from PIL import Image
from pypdf import PdfReader

from report_engine.errors import ImageEmbedError
from report_engine.pdf import layouts
from report_engine.pdf.adapter import (
    estimate_block_height,
    fill_attachment_items,
    render_block,
    render_pdf,
    render_pdf_bytes,
)
from report_engine.pdf.document import PdfDocument
from report_engine.pdf.helpers import SECTION_TITLE_GAP
from report_engine.pdf.images import ImageFetcher, decode_image, fit_within
from report_engine.pdf.layouts import (
    render_checklist,
    render_metrics_cards,
    render_photo_grid,
    render_signature_box,
    render_single_column,
    render_two_column,
)
from report_engine.render_tree import generate_render_tree

from conftest import BROKEN_URL, PHOTO_URL_1, SIGNATURE_URL, make_png

pytestmark = pytest.mark.anyio


def pdf_pages(pdf_bytes: bytes):
    return [page.extract_text() for page in PdfReader(io.BytesIO(pdf_bytes)).pages]


def section_of(*field_ids, section_id="s", name="Section", field_type="text"):
    return {
        "section_id": section_id,
        "section_name": name,
        "fields": [{"field_id": f, "field_name": f.title(), "field_type": field_type} for f in field_ids],
    }


@pytest.fixture
def doc():
    return PdfDocument()


@pytest.fixture
def drawn_text(doc, monkeypatch):
    """Every string drawn with doc.text, in order."""
    calls = []
    original = doc.text

    def record(x, y, text, align="left"):
        calls.append(str(text))
        original(x, y, text, align)

    monkeypatch.setattr(doc, "text", record)
    return calls


# =============================================================================
# DOCUMENT
# =============================================================================

class TestDocument:

    def test_geometry(self, doc):
        assert (doc.width, doc.height) == (210, 297)
        assert doc.content_width == 170
        assert doc.usable_height == 257

    def test_landscape(self):
        doc = PdfDocument("A4", "landscape", {"left": 10})
        assert (doc.width, doc.height) == (297, 210)
        assert doc.content_width == 297 - 10 - 20

    def test_ensure_space_breaks(self, doc):
        assert doc.ensure_space(100, 50) == 100
        assert doc.ensure_space(doc.height - 25, 10) == doc.margin_top
        assert doc.page_count == 2

    def test_ensure_space_never_breaks_at_top(self, doc):
        assert doc.ensure_space(doc.margin_top, 1000) == doc.margin_top
        assert doc.page_count == 1

    def test_page_numbers_and_footer(self, doc):
        doc.set_font(10)
        doc.text(20, 30, "first page")
        doc.new_page()
        doc.text(20, 30, "second page")

        pages = pdf_pages(doc.finalize({"left": "Generated by WorkLedger", "right": "PMC/2026/001"}))

        assert len(pages) == 2
        assert "Page 1 of 2" in pages[0]
        assert "Page 2 of 2" in pages[1]
        assert "Generated by WorkLedger" in pages[1]
        assert "PMC/2026/001" in pages[0]

    def test_finalize_is_cached(self, doc):
        assert doc.finalize() is doc.finalize()

    def test_split_text_wraps(self, doc):
        lines = doc.split_text("word " * 80, 50)
        assert len(lines) > 1
        assert doc.split_text(None, 50) == [""]


# =============================================================================
# LAYOUTS
# =============================================================================

class TestTwoColumn:

    def test_even_left_odd_right(self, doc, monkeypatch):
        placed = []
        monkeypatch.setattr(layouts, "_draw_field", lambda d, label, lines, x, y: placed.append((label, x, y)))

        section = section_of("f0", "f1", "f2", "f3", "f4")
        data = {f"s.f{i}": f"value {i}" for i in range(5)}
        render_two_column(doc, section, data, 30)

        right_x = doc.margin_left + (doc.content_width - layouts.COLUMN_GAP) / 2 + layouts.COLUMN_GAP
        xs = {label: x for label, x, _ in placed}
        assert [label for label, x, _ in placed if x == doc.margin_left] == ["F0", "F2", "F4"]
        assert [label for label, x, _ in placed if x == right_x] == ["F1", "F3"]
        assert xs["F0"] != xs["F1"]

    def test_fixed_row_pitch(self, doc, monkeypatch):
        placed = []
        monkeypatch.setattr(layouts, "_draw_field", lambda d, label, lines, x, y: placed.append((label, y)))

        render_two_column(doc, section_of("a", "b", "c", "d"), {}, 30)

        rows = sorted({y for _, y in placed})
        assert rows[1] - rows[0] == layouts.ROW_PITCH

    def test_attachment_fields_stripped(self, doc, monkeypatch):
        placed = []
        monkeypatch.setattr(layouts, "_draw_field", lambda d, label, lines, x, y: placed.append(label))

        section = section_of("name")
        section["fields"].append({"field_id": "pic", "field_name": "Pic", "field_type": "photo"})
        render_two_column(doc, section, {"s.name": "x", "s.pic": ["att-1"]}, 30)

        assert placed == ["Name"]

    def test_no_fields_keeps_cursor(self, doc):
        assert render_two_column(doc, section_of(), {}, 42) == 42


def test_single_column_page_break(doc):
    y = render_single_column(doc, section_of("remarks"), {"s.remarks": "All good"}, doc.height - 25)

    assert doc.page_count == 2
    assert y < doc.height / 2

    pages = pdf_pages(doc.finalize())
    assert len(pages) == 2
    assert "All good" in pages[1]
    assert "Page 1 of 2" in pages[0]
    assert "Page 2 of 2" in pages[1]


def test_checklist_show_checked_only(doc, drawn_text):
    section = section_of("ppe", "lockout", "permit", field_type="checkbox")
    data = {"s.ppe": True, "s.lockout": False, "s.permit": "yes"}

    render_checklist(doc, section, data, 30, {"show_checked_only": True})

    assert "Ppe" in drawn_text
    assert "Permit" in drawn_text
    assert "Lockout" not in drawn_text


def test_checklist_all_items(doc, drawn_text):
    section = section_of("ppe", "lockout", field_type="checkbox")
    render_checklist(doc, section, {"s.ppe": True}, 30)
    assert "Ppe" in drawn_text
    assert "Lockout" in drawn_text


def test_metrics_incomplete_row_advances(doc):
    section = {"section_id": "m", "section_name": None, "fields": [
        {"field_id": f"k{i}", "field_name": f"Metric {i}"} for i in range(4)
    ]}
    row = layouts.METRIC_CARD_HEIGHT + layouts.METRIC_GAP

    y = render_metrics_cards(doc, section, {"m.k0": 1}, 30, {"columns": 3})

    assert y == 30 + 2 * row + 3


class TestPhotoGrid:

    async def test_failed_image_draws_placeholder(self, doc, image_fetcher, drawn_text):
        photos = [
            {"url": PHOTO_URL_1, "caption": "Before"},
            {"url": BROKEN_URL, "caption": "Broken"},
        ]
        await render_photo_grid(doc, {"section_name": "Photos"}, photos, 30, {"columns": 2}, image_fetcher)

        assert "Image not available" in drawn_text
        assert "Before" in drawn_text
        assert sorted(image_fetcher.requested) == sorted([PHOTO_URL_1, BROKEN_URL])

    async def test_empty_grid(self, doc, image_fetcher, drawn_text):
        y = await render_photo_grid(doc, {"section_name": "Photos"}, [], 30, {}, image_fetcher)
        assert "No photos attached" in drawn_text
        assert y > 30

    async def test_photos_without_url_skipped(self, doc, image_fetcher):
        await render_photo_grid(doc, {"section_name": "Photos"}, [{"caption": "no url"}], 30, {}, image_fetcher)
        assert image_fetcher.requested == []

    async def test_data_url_photo(self, doc, drawn_text):
        url = "data:image/png;base64," + base64.b64encode(make_png()).decode()
        await render_photo_grid(doc, {"section_name": "Photos"}, [{"url": url, "caption": "Inline"}], 30, {}, ImageFetcher())
        assert "Image not available" not in drawn_text


class TestSignatureBox:

    async def test_signature_drawn(self, doc, image_fetcher, drawn_text):
        signatures = [{"url": SIGNATURE_URL, "caption": "Worker Signature — Ravi", "date": "2026-02-05T17:27:00"}]
        await render_signature_box(doc, {"section_name": "Signatures"}, signatures, 30, image_fetcher)

        assert "Worker Signature — Ravi" in drawn_text
        assert "Signed: 05 Feb 2026, 17:27" in drawn_text

    async def test_failed_signature(self, doc, image_fetcher, drawn_text):
        await render_signature_box(doc, {"section_name": "Signatures"}, [{"url": BROKEN_URL, "name": "S"}], 30, image_fetcher)
        assert "Failed to load" in drawn_text

    async def test_no_signatures(self, doc, image_fetcher, drawn_text):
        await render_signature_box(doc, {"section_name": "Signatures"}, [], 30, image_fetcher)
        assert "Not signed yet" in drawn_text


# =============================================================================
# IMAGES
# =============================================================================

def test_fit_within_keeps_ratio():
    width, height = fit_within(1000, 500, 100, 100)
    assert width == 100
    assert height == pytest.approx(50)


def test_fit_within_never_upscales():
    width, height = fit_within(10, 10, 100, 100)
    assert width < 100 and height < 100


def test_decode_flattens_transparency():
    image = decode_image(make_png(color=(0, 0, 0, 0), mode="RGBA"))
    assert image.mode == "RGB"
    assert image.getpixel((0, 0)) == (255, 255, 255)


def test_decode_garbage():
    with pytest.raises(ImageEmbedError):
        decode_image(b"not an image")


async def test_fetch_all_isolates_failures(image_fetcher):
    results = await image_fetcher.fetch_all([PHOTO_URL_1, BROKEN_URL, None])
    assert isinstance(results[0], Image.Image)
    assert isinstance(results[1], ImageEmbedError)
    assert isinstance(results[2], ImageEmbedError)


# =============================================================================
# ADAPTER
# =============================================================================

async def test_render_pdf_bytes(schema, record, image_fetcher):
    tree = generate_render_tree(schema, record)
    pages = pdf_pages(await render_pdf_bytes(tree, fetcher=image_fetcher))
    text = "\n".join(pages)

    assert "WORKLEDGER" in text
    assert "Inspection Report" in text
    assert "Level 3 Plant Room" in text
    assert "Compressor running normally." in text
    assert f"Page 1 of {len(pages)}" in pages[0]
    assert "PMC/2026/001" in text


async def test_render_pdf_without_logo(schema, record, image_fetcher):
    tree = generate_render_tree(schema, record, field_selection={"includeLogo": False})
    text = "\n".join(pdf_pages(await render_pdf_bytes(tree, fetcher=image_fetcher, footer={})))
    assert "WORKLEDGER" not in text


async def test_second_record_starts_new_page(schema, record, image_fetcher):
    tree = generate_render_tree(schema, record)
    doc = await render_pdf(tree, fetcher=image_fetcher)
    pages_before = doc.page_count

    await render_pdf(tree, document=doc, fetcher=image_fetcher)

    assert doc.page_count >= pages_before + 1
    pages = pdf_pages(doc.finalize())
    assert "Inspection Report" in pages[pages_before]


async def test_unknown_block_falls_back_to_single_column(image_fetcher):
    tree = {
        "page": {"size": "A4"},
        "metadata": {},
        "blocks": [{"blockId": "odd", "type": "gantt_chart", "layout": None, "content": {"phase": "Install"}, "options": {}}],
    }
    text = "\n".join(pdf_pages(await render_pdf_bytes(tree, fetcher=image_fetcher)))
    assert "Install" in text


def test_block_height_capped(doc):
    block = {"type": "text_section", "content": {"text": "line " * 5000}, "options": {}}
    assert estimate_block_height(doc, block) == doc.usable_height


class TestEmptyAttachmentBlocks:
    """Empty photo grids and signature boxes only need their placeholder line."""

    def test_estimates(self, doc):
        photos = {"type": "photo_grid", "content": {"photos": []}, "options": {}}
        signatures = {"type": "signature_box", "content": {"signatures": []}, "options": {}}

        assert estimate_block_height(doc, photos) == SECTION_TITLE_GAP + 10
        assert estimate_block_height(doc, signatures) < 25
        assert estimate_block_height(doc, {**photos, "content": {"photos": [{"url": PHOTO_URL_1}]}}) > 60

    @pytest.mark.parametrize("block, placeholder", [
        ({"blockId": "p", "type": "photo_grid", "content": {"photos": []}, "options": {}}, "No photos attached"),
        ({"blockId": "s", "type": "signature_box", "content": {"signatures": []}, "options": {}}, "Not signed yet"),
    ])
    async def test_no_page_break_near_bottom(self, doc, drawn_text, block, placeholder):
        y = doc.height - doc.margin_bottom - 25

        y = doc.ensure_space(y, estimate_block_height(doc, block))
        await render_block(doc, block, y, ImageFetcher())

        assert doc.page_count == 1
        assert placeholder in drawn_text


@pytest.mark.parametrize("columns", ["2", "auto", None, 0, True])
def test_block_height_columns_coerced(doc, columns):
    photos = {"type": "photo_grid", "content": {"photos": [{"url": PHOTO_URL_1}]}, "options": {"columns": columns}}
    metrics = {"type": "metrics_cards", "content": {"metrics": [{"label": "Hours"}]}, "options": {"columns": columns}}
    assert estimate_block_height(doc, photos) > 0
    assert estimate_block_height(doc, metrics) > 0


class TestAttachmentFill:

    def test_empty_blocks_filled(self):
        attachments = [
            {"id": "p1", "file_type": "photo", "storage_url": PHOTO_URL_1, "caption": "Before"},
            {"id": "s1", "file_type": "signature", "storage_url": SIGNATURE_URL, "caption": "Worker Signature"},
        ]
        photo_block = {"type": "photo_grid", "content": {"photos": []}}

        filled = fill_attachment_items(photo_block, attachments)
        assert [p["id"] for p in filled["content"]["photos"]] == ["p1"]
        assert photo_block["content"]["photos"] == []

        signatures = fill_attachment_items({"type": "signature_box", "content": {}}, attachments)["content"]["signatures"]
        assert [s["id"] for s in signatures] == ["s1"]

    def test_blocks_with_items_kept(self):
        block = {"type": "photo_grid", "content": {"photos": [{"url": PHOTO_URL_1}]}}
        assert fill_attachment_items(block, [{"id": "x", "file_type": "photo"}]) is block

    async def test_render_pdf_uses_attachments(self, doc, drawn_text):
        url = "data:image/png;base64," + base64.b64encode(make_png()).decode()
        tree = {
            "page": {"size": "A4"},
            "metadata": {},
            "blocks": [{"blockId": "photos", "type": "photo_grid", "content": {"photos": []}, "options": {}}],
        }
        attachments = [{"id": "p1", "file_type": "photo", "storage_url": url, "caption": "Inline photo"}]

        await render_pdf(tree, attachments, document=doc, fetcher=ImageFetcher())

        assert "Inline photo" in drawn_text
        assert "No photos attached" not in drawn_text
