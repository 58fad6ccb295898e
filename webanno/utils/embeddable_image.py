"""
Images embedded in table cells.

The monitoring table shows one state icon per document and annotator. The
icons are static resources: their URLs carry no anti-cache parameter, so
browsers reuse the cached image across table refreshes.
"""

from typing import Dict

from pydantic import BaseModel

ICON_ROUTE = "/api/v1/monitoring/icons"
ICON_CACHE_CONTROL = "public, max-age=86400"

_ICON = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 16 16">'
    '<title>{title}</title>{shape}</svg>'
)

# State -> (title, SVG shape)
STATE_ICONS: Dict[str, tuple] = {
    "NEW": ("New", '<circle cx="8" cy="8" r="6" fill="none" stroke="#888" stroke-width="2"/>'),
    "IN_PROGRESS": (
        "In progress",
        '<circle cx="8" cy="8" r="6" fill="none" stroke="#e0a000" stroke-width="2"/>'
        '<path d="M8 2a6 6 0 0 1 0 12z" fill="#e0a000"/>',
    ),
    "FINISHED": (
        "Finished",
        '<circle cx="8" cy="8" r="7" fill="#2e9e44"/>'
        '<path d="M4.5 8.5l2.5 2.5 4.5-5" fill="none" stroke="#fff" stroke-width="2"/>',
    ),
    "IGNORE": (
        "Ignored",
        '<circle cx="8" cy="8" r="6" fill="none" stroke="#c00" stroke-width="2"/>'
        '<path d="M4 12L12 4" stroke="#c00" stroke-width="2"/>',
    ),
}


class EmbeddableImage(BaseModel):
    """Cell value referencing an image resource."""

    component_id: str
    src: str
    alt: str = ""

    @classmethod
    def for_state(cls, component_id: str, state: str) -> "EmbeddableImage":
        title, _ = STATE_ICONS[state]
        return cls(component_id=component_id, src=f"{ICON_ROUTE}/{state}.svg", alt=title)


def render_state_icon(state: str) -> str:
    """
    SVG markup of a state icon.

    Raises:
        KeyError: for unknown states
    """
    title, shape = STATE_ICONS[state]
    return _ICON.format(title=title, shape=shape)
