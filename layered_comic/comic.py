"""
Layered Comic — Comic aggregate.

Panel-level edits over an immutable Comic, plus the JSON document format
used for local saves and exports.

Document shape (camelCase keys, unknown keys ignored on load):

    {"id": ..., "title": ..., "panels": [
        {"id": ..., "title": ..., "background": {...} | null,
         "elements": [{"id", "type", "name", "imageUrl",
                       "position": {"x", "y", "z"},
                       "size": {"width", "height"},
                       "rotation", "opacity"}]}]}

isSelected is editing-session state and is never written.
"""

import json
import logging
import math
import re
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Union

from layered_comic.errors import ParseError
from layered_comic.models import (
    Comic,
    Element,
    ElementType,
    Panel,
    Position,
    Size,
    new_id,
)

logger = logging.getLogger(__name__)

DEFAULT_COMIC_TITLE = "My Comic"
DEFAULT_PANEL_TITLE = "New panel"


# ============================================================
# Construction and panel-level edits
# ============================================================

def new_comic(title: str = DEFAULT_COMIC_TITLE) -> Comic:
    return Comic(id=new_id("comic"), title=title)


def new_panel(title: str = DEFAULT_PANEL_TITLE) -> Panel:
    return Panel(id=new_id("panel"), title=title)


def rename_comic(comic: Comic, title: str) -> Comic:
    return replace(comic, title=title)


def add_panel(comic: Comic, panel: Panel) -> Comic:
    """Append a panel at the end of the reading order."""
    if get_panel(comic, panel.id) is not None:
        panel = replace(panel, id=new_id("panel"))
    return replace(comic, panels=comic.panels + (panel,))


def get_panel(comic: Comic, panel_id: Optional[str]) -> Optional[Panel]:
    return next((p for p in comic.panels if p.id == panel_id), None)


def replace_panel(comic: Comic, panel: Panel) -> Comic:
    """Swap in a new value for the panel with the same id. Unknown id → no-op."""
    if get_panel(comic, panel.id) is None:
        return comic
    return replace(
        comic,
        panels=tuple(panel if p.id == panel.id else p for p in comic.panels),
    )


def update_panel(
    comic: Comic,
    panel_id: str,
    change: Callable[..., Panel],
    *args,
) -> Comic:
    """Apply a scene operation, e.g. update_panel(comic, pid, scene.move, eid, 10, 20)."""
    panel = get_panel(comic, panel_id)
    if panel is None:
        return comic
    return replace_panel(comic, change(panel, *args))


def remove_panel(comic: Comic, panel_id: str) -> Comic:
    return replace(comic, panels=tuple(p for p in comic.panels if p.id != panel_id))


def panels_from_script(script_text: str) -> list[Panel]:
    """One new panel per non-empty line of a formatted script."""
    return [
        new_panel(line.strip())
        for line in script_text.splitlines()
        if line.strip()
    ]


# ============================================================
# Serialization
# ============================================================

def element_to_dict(element: Element) -> dict:
    return {
        "id": element.id,
        "type": element.type.value,
        "name": element.name,
        "imageUrl": element.image_url,
        "position": {
            "x": element.position.x,
            "y": element.position.y,
            "z": element.position.z,
        },
        "size": {
            "width": element.size.width,
            "height": element.size.height,
        },
        "rotation": element.rotation,
        "opacity": element.opacity,
    }


def panel_to_dict(panel: Panel) -> dict:
    return {
        "id": panel.id,
        "title": panel.title,
        "elements": [element_to_dict(e) for e in panel.elements],
        "background": element_to_dict(panel.background) if panel.background else None,
    }


def to_dict(comic: Comic) -> dict:
    return {
        "id": comic.id,
        "title": comic.title,
        "panels": [panel_to_dict(p) for p in comic.panels],
    }


def serialize(comic: Comic) -> str:
    return json.dumps(to_dict(comic), indent=2)


def _require(data: dict, key: str, kind, where: str):
    if not isinstance(data, dict):
        raise ParseError(f"{where}: expected an object, got {type(data).__name__}")
    if key not in data:
        raise ParseError(f"{where}: missing '{key}'")
    value = data[key]
    if not isinstance(value, kind) or isinstance(value, bool):
        raise ParseError(f"{where}: '{key}' has the wrong type")
    return value


def _number(data: dict, key: str, where: str, default=None) -> float:
    # Optional fields: absent or null means the documented default
    if default is not None and data.get(key) is None:
        return default
    value = _require(data, key, (int, float), where)
    if not math.isfinite(value):
        raise ParseError(f"{where}: '{key}' must be a finite number")
    return value


def element_from_dict(data: dict, where: str = "element") -> Element:
    element_id = _require(data, "id", str, where)
    where = f"{where} {element_id}"

    type_name = _require(data, "type", str, where)
    try:
        element_type = ElementType(type_name)
    except ValueError:
        raise ParseError(f"{where}: unknown element type {type_name!r}")

    position = _require(data, "position", dict, where)
    size = _require(data, "size", dict, where)
    try:
        return Element(
            id=element_id,
            type=element_type,
            image_url=_require(data, "imageUrl", str, where),
            name=data.get("name") if isinstance(data.get("name"), str) else "",
            position=Position(
                x=_number(position, "x", where),
                y=_number(position, "y", where),
                z=_number(position, "z", where),
            ),
            size=Size(
                width=_number(size, "width", where),
                height=_number(size, "height", where),
            ),
            rotation=_number(data, "rotation", where, default=0.0),
            opacity=_number(data, "opacity", where, default=1.0),
        )
    except ValueError as e:
        if isinstance(e, ParseError):
            raise
        raise ParseError(f"{where}: {e}") from e


def panel_from_dict(data: dict, where: str = "panel") -> Panel:
    panel_id = _require(data, "id", str, where)
    where = f"{where} {panel_id}"

    title = data.get("title", data.get("description", DEFAULT_PANEL_TITLE))
    if not isinstance(title, str):
        raise ParseError(f"{where}: 'title' has the wrong type")

    raw_elements = data.get("elements", [])
    if not isinstance(raw_elements, list):
        raise ParseError(f"{where}: 'elements' must be a list")
    elements = tuple(element_from_dict(e, f"{where} element") for e in raw_elements)

    if any(e.is_background for e in elements):
        raise ParseError(f"{where}: background element stored among elements")

    background = None
    if data.get("background") is not None:
        background = element_from_dict(data["background"], f"{where} background")
        if not background.is_background:
            raise ParseError(f"{where}: background slot holds a {background.type.value}")

    ids = [e.id for e in elements] + ([background.id] if background else [])
    if len(ids) != len(set(ids)):
        raise ParseError(f"{where}: duplicate element ids")

    return Panel(id=panel_id, title=title, elements=elements, background=background)


def from_dict(data: dict) -> Comic:
    comic_id = _require(data, "id", str, "comic")
    title = data.get("title", DEFAULT_COMIC_TITLE)
    if not isinstance(title, str):
        raise ParseError("comic: 'title' has the wrong type")

    raw_panels = data.get("panels", [])
    if not isinstance(raw_panels, list):
        raise ParseError("comic: 'panels' must be a list")
    panels = tuple(panel_from_dict(p) for p in raw_panels)

    ids = [p.id for p in panels]
    if len(ids) != len(set(ids)):
        raise ParseError("comic: duplicate panel ids")

    return Comic(id=comic_id, title=title, panels=panels)


def deserialize(text: Union[str, bytes]) -> Comic:
    """Parse a saved comic document (text or UTF-8 bytes). Raises ParseError on malformed input."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise ParseError(f"Comic document is not valid JSON: {e}") from e
    return from_dict(data)


def load_or_default(text: Optional[Union[str, bytes]]) -> Comic:
    """Deserialize, falling back to a fresh comic when the document is unusable."""
    if not text:
        return new_comic()
    try:
        return deserialize(text)
    except ParseError as e:
        logger.error(f"Failed to parse saved comic, starting fresh: {e}")
        return new_comic()


# ============================================================
# Export and local storage
# ============================================================

def export_filename(comic: Comic) -> str:
    """Download name: the title with whitespace runs turned into hyphens."""
    return re.sub(r"\s+", "-", comic.title) + ".json"


def export_comic(comic: Comic, output_dir: str) -> Path:
    """Write the comic document to output_dir and return its path."""
    path = Path(output_dir) / export_filename(comic)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(comic), encoding="utf-8")
    logger.info(f"Comic exported: {path}")
    return path


class ComicStore:
    """Keeps the working comic in a JSON file between sessions."""

    def __init__(self, path: str = "data/comic.json"):
        self.path = Path(path)

    def save(self, comic: Comic):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(serialize(comic), encoding="utf-8")
        logger.debug(f"Comic saved: {self.path}")

    def load(self) -> Comic:
        """Saved comic, or a fresh one when nothing usable is on disk."""
        if not self.path.exists():
            return new_comic()
        return load_or_default(self.path.read_bytes())
