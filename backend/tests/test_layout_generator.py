from datetime import datetime, timezone

import pytest

from report_engine.errors import StructuralError
from report_engine.layout_config import validate_layout
from report_engine.layout_generator import (
    generate_layout_from_template,
    preview_layout_generation,
    suggest_layout_description,
    suggest_layout_name,
)
from report_engine.render_tree import generate_render_tree

GENERATED_AT = datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def template(record):
    return record["template"]


def sections_by_id(layout):
    return {s["section_id"]: s for s in layout["sections"]}


def test_block_order(template):
    layout = generate_layout_from_template(template, GENERATED_AT)

    assert [s["section_id"] for s in layout["sections"]] == [
        "header",
        "site_info_block",
        "work_details_block",
        "checks_block",
        "sign_off_block",
        "before_block",
        "after_block",
        "signatures",
    ]
    validate_layout(layout)


def test_detail_blocks(template):
    sections = sections_by_id(generate_layout_from_template(template, GENERATED_AT))

    assert sections["header"]["content"] == {"title": "PMC Daily Inspection"}
    assert sections["site_info_block"]["binding_rules"] == {"template_section": "site_info"}
    assert sections["site_info_block"]["options"] == {"columns": 2, "title": "Site Information"}
    # textarea sections get one column
    assert sections["work_details_block"]["options"]["columns"] == 1


def test_photo_and_signature_blocks(template):
    sections = sections_by_id(generate_layout_from_template(template, GENERATED_AT))

    assert sections["before_block"]["block_type"] == "photo_grid"
    assert sections["before_block"]["binding_rules"] == {"filter_by_field": "before"}
    assert sections["before_block"]["options"]["title"] == "Photos Before Work"
    assert sections["signatures"]["block_type"] == "signature_box"
    assert sections["signatures"]["options"]["title"] == "Signatures & Acknowledgment"


def test_meta(template):
    meta = generate_layout_from_template(template, GENERATED_AT)["meta"]
    assert meta["templateName"] == "PMC Daily Inspection"
    assert meta["generatedAt"] == "2026-02-17T09:00:00+00:00"


def test_no_signature_block_without_signature_fields(template):
    template["fields_schema"]["sections"].pop()
    sections = sections_by_id(generate_layout_from_template(template, GENERATED_AT))
    assert "signatures" not in sections


@pytest.mark.parametrize("bad", [{}, {"fields_schema": None}, {"fields_schema": {"sections": "x"}}])
def test_template_without_sections(bad):
    with pytest.raises(StructuralError) as exc:
        generate_layout_from_template(bad)
    assert exc.value.errors == ["Template has no valid fields_schema"]


def test_generated_layout_renders(template, record):
    layout = generate_layout_from_template(template, GENERATED_AT)
    blocks = {b["blockId"]: b for b in generate_render_tree(layout, record)["blocks"]}

    assert blocks["site_info_block"]["content"]["location"] == "Level 3 Plant Room"
    assert [p["caption"] for p in blocks["before_block"]["content"]["photos"]] == [
        "Photos Before Work (1 of 2)",
        "Photos Before Work (2 of 2)",
    ]
    assert len(blocks["after_block"]["content"]["photos"]) == 1
    assert blocks["signatures"]["content"]["signatures"][0]["caption"] == "Worker Signature — Ravi Kumar"


def test_suggestions(template):
    assert suggest_layout_name({"template_name": "Chiller Report Template"}) == "Chiller - Layout"
    assert suggest_layout_name(template) == "PMC Daily Inspection - Layout"
    assert suggest_layout_description(template) == (
        "Auto-generated layout for PMC Daily Inspection. Contains 5 sections with proper field bindings."
    )


def test_preview_summary(template):
    preview = preview_layout_generation(template, GENERATED_AT)

    assert preview["summary"] == {
        "totalSections": 8,
        "detailSections": 4,
        "photoSections": 2,
        "hasSignatures": True,
        "hasHeader": True,
    }
    assert preview["suggestedName"] == "PMC Daily Inspection - Layout"
