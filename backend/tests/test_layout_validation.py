import pytest

from report_engine.errors import StructuralError
from report_engine.layout_config import (
    LEGACY,
    SELF_DESCRIBING,
    STOCK_LAYOUTS,
    collect_layout_errors,
    detect_dialect,
    get_page_config,
    get_page_dimensions,
    get_stock_layout,
    validate_layout,
)


def test_valid_schema_passes(schema):
    validate_layout(schema)
    assert collect_layout_errors(schema) == []


@pytest.mark.parametrize("layout_id", list(STOCK_LAYOUTS))
def test_stock_layouts_are_valid(layout_id):
    validate_layout(get_stock_layout(layout_id))


def test_stock_layout_is_a_copy():
    first = get_stock_layout("minimal_report")
    first["sections"].clear()
    assert get_stock_layout("minimal_report")["sections"]


def test_unknown_stock_layout():
    assert get_stock_layout("nope") is None


@pytest.mark.parametrize("bad, message", [
    (None, "Layout schema must be an object"),
    ([], "Layout schema must be an object"),
    ({"sections": []}, "Missing 'page' configuration"),
    ({"page": {}}, "Missing 'sections' field"),
    ({"page": {}, "sections": {}}, "'sections' must be a list"),
    ({"page": {}, "sections": ["x"]}, "Section 0 must be an object"),
    ({"page": {}, "sections": [{"block_type": "header"}]}, "Section 0 missing required field 'section_id'"),
    ({"page": {}, "sections": [{"section_id": "a"}]}, "Section 'a' missing required field 'block_type'"),
    ({"page": {}, "sections": [{"section_id": "a", "block_type": ["two_column"]}]}, "Section 'a' block_type must be a string"),
    ({"page": {}, "sections": [{"section_id": "a", "type": {"kind": "table"}}]}, "Section 'a' block_type must be a string"),
])
def test_structural_errors(bad, message):
    with pytest.raises(StructuralError) as exc:
        validate_layout(bad)
    assert str(exc.value) == message
    assert message in exc.value.errors


def test_duplicate_section_ids():
    schema = {"page": {}, "sections": [
        {"section_id": "a", "block_type": "header"},
        {"section_id": "a", "block_type": "table"},
    ]}
    assert collect_layout_errors(schema) == ["Duplicate section_id: 'a'"]


def test_all_errors_collected():
    schema = {"sections": [{"section_id": "a"}, {"block_type": "table"}]}
    errors = collect_layout_errors(schema)
    assert len(errors) == 3


def test_legacy_type_key_accepted():
    validate_layout({"page": {}, "sections": [{"section_id": "a", "type": "checklist"}]})


def test_structural_error_is_value_error():
    with pytest.raises(ValueError):
        validate_layout("not a layout")


def test_detect_dialect():
    assert detect_dialect({"section_id": "a", "block_type": "header", "binding_rules": {}}) == SELF_DESCRIBING
    assert detect_dialect({"section_id": "a", "type": "header", "fields": ["x"]}) == LEGACY


def test_page_config_defaults():
    page = get_page_config({"size": "LETTER", "margins": {"top": 10}})
    assert page["size"] == "LETTER"
    assert page["orientation"] == "portrait"
    assert page["margins"] == {"top": 10, "right": 20, "bottom": 20, "left": 20}


def test_page_dimensions():
    assert get_page_dimensions("A4", "portrait") == (210, 297)
    assert get_page_dimensions("a4", "landscape") == (297, 210)
    assert get_page_dimensions("TABLOID") == (210, 297)
