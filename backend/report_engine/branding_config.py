"""
Branding Configuration for WorkLedger Reports

Defines default branding settings and helpers to merge per-organization
overrides. Branding is display-only; it never changes what data is rendered.
"""

from typing import Mapping, Optional

# =============================================================================
# DEFAULT BRANDING
# Fallback values when the organization hasn't configured a setting
# =============================================================================

DEFAULT_BRANDING = {
    "version": 1,

    # Identity
    "brand_name": "WORKLEDGER",
    "report_title": "WORK REPORT",
    "organization_name": "",

    # Logo
    "logo_data": None,
    "logo_mime_type": "image/png",
    "logo_size": "medium",        # small (40px), medium (60px), large (80px)

    # Colors
    "primary_color": "#3b82f6",   # Brand text, metric cards, accents
    "text_color": "#1f2937",      # Body text
    "muted_color": "#6b7280",     # Labels, captions
    "border_color": "#e5e7eb",    # Cards, table borders

    # Typography
    "font_family": "Helvetica, Arial, sans-serif",
    "header_font_size": "16pt",
    "body_font_size": "10pt",
    "small_font_size": "8pt",

    # Footer Template (supports variables)
    "footer_left": "Generated by WorkLedger on {generated_at}",
    "footer_right": "{contract_number}",
}

# Logo size mappings
LOGO_SIZES = {
    "small": "40px",
    "medium": "60px",
    "large": "80px",
}


# =============================================================================
# BRANDING LOADER
# =============================================================================

def get_branding(overrides: Optional[Mapping] = None) -> dict:
    """
    Complete branding config: defaults merged with overrides.

    Override keys not present in DEFAULT_BRANDING are ignored, as are None
    values (None means "not configured").
    """
    branding = dict(DEFAULT_BRANDING)
    for key, value in (overrides or {}).items():
        if key in DEFAULT_BRANDING and value is not None:
            branding[key] = value
    return branding


def get_logo_data_url(branding: dict) -> Optional[str]:
    """
    Get logo as data URL for embedding in HTML.

    Returns:
        Data URL string or None if no logo
    """
    if not branding.get("logo_data"):
        return None
    mime = branding.get("logo_mime_type", "image/png")
    return f"data:{mime};base64,{branding['logo_data']}"


def get_logo_size_px(branding: dict) -> str:
    size_key = branding.get("logo_size", "medium")
    return LOGO_SIZES.get(size_key, LOGO_SIZES["medium"])


def hex_to_rgb(color: str, default=(59, 130, 246)) -> tuple:
    """'#3b82f6' -> (59, 130, 246). Falls back to default when unparseable."""
    value = (color or "").lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        return default
    try:
        return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return default


def format_footer_template(template: str, context: dict) -> str:
    """
    Format footer template with context variables.

    Supported variables:
        {brand_name}, {organization_name}
        {contract_number}, {contract_name}
        {generated_at}

    Args:
        template: Footer template string with {variable} placeholders
        context: Dict of variable values

    Returns:
        Formatted string with variables replaced
    """
    if not template:
        return ""

    try:
        return template.format(**context)
    except KeyError:
        # If a variable is missing, return template as-is
        return template
