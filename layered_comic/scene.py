"""
Layered Comic — Scene mutation API.

The only sanctioned way to evolve a Panel. Each operation takes a Panel and
returns a new one. A missing element id is never an error: the UI may target
an element that another control just removed, so the call degrades to a
no-op instead.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional, Union

from layered_comic.layers import (
    LayerDirection,
    clamp_opacity,
    move_layer,
    normalize_rotation,
    top_z,
    transform,
)
from layered_comic.models import Element, Panel, new_id

logger = logging.getLogger(__name__)


def find_element(panel: Panel, element_id: str) -> Optional[Element]:
    """Look up an element (or the background) by id."""
    for element in panel.elements:
        if element.id == element_id:
            return element
    if panel.background and panel.background.id == element_id:
        return panel.background
    return None


def selected_element(panel: Panel) -> Optional[Element]:
    return next((e for e in panel.elements if e.is_selected), None)


def _update_element(
    panel: Panel,
    element_id: str,
    change: Callable[[Element], Element],
) -> Panel:
    """Rebuild the panel with one element replaced. Unknown id → same panel."""
    if not any(e.id == element_id for e in panel.elements):
        logger.debug(f"Panel {panel.id}: no element {element_id}, ignoring edit")
        return panel
    return replace(
        panel,
        elements=tuple(
            change(e) if e.id == element_id else e for e in panel.elements
        ),
    )


def select(panel: Panel, element_id: Optional[str]) -> Panel:
    """
    Make element_id the only selected element.

    An id that is not in the panel (or None) leaves nothing selected.
    """
    return replace(
        panel,
        elements=tuple(
            replace(e, is_selected=(e.id == element_id)) for e in panel.elements
        ),
    )


def deselect_all(panel: Panel) -> Panel:
    return select(panel, None)


def place(panel: Panel, element: Element) -> Panel:
    """
    Attach an element to the panel.

    Backgrounds go to the background slot, replacing any previous one.
    Everything else is appended on top of the current stack. An element
    whose id is already used in this panel gets a fresh id.
    """
    taken = {e.id for e in panel.elements}
    if panel.background:
        taken.add(panel.background.id)
    if element.id in taken:
        element = replace(element, id=new_id("element"))

    element = replace(element, is_selected=False)

    if element.is_background:
        logger.info(f"Panel {panel.id}: background set to {element.id}")
        return replace(panel, background=element)

    z = top_z(panel.elements) + 1
    element = replace(element, position=replace(element.position, z=z))
    logger.info(f"Panel {panel.id}: placed {element.type.value} {element.id} at z={z:g}")
    return replace(panel, elements=panel.elements + (element,))


def move(panel: Panel, element_id: str, x: float, y: float) -> Panel:
    return _update_element(panel, element_id, lambda e: transform(e, x=x, y=y))


def resize(panel: Panel, element_id: str, width: float, height: float) -> Panel:
    """Change only the size. Non-positive dimensions leave the element as it was."""
    return _update_element(
        panel, element_id, lambda e: transform(e, width=width, height=height)
    )


def rotate(panel: Panel, element_id: str, degrees: float) -> Panel:
    return _update_element(
        panel, element_id, lambda e: replace(e, rotation=normalize_rotation(degrees))
    )


def set_opacity(panel: Panel, element_id: str, opacity: float) -> Panel:
    return _update_element(
        panel, element_id, lambda e: replace(e, opacity=clamp_opacity(opacity))
    )


def reorder(
    panel: Panel,
    element_id: str,
    direction: Union[LayerDirection, str],
) -> Panel:
    """Move an element one step up or down the render order."""
    elements = move_layer(panel.elements, element_id, direction)
    if elements == panel.elements:
        return panel
    return replace(panel, elements=elements)


def remove(panel: Panel, element_id: str) -> Panel:
    """Drop an element. The background id clears the background slot."""
    if panel.background and panel.background.id == element_id:
        logger.info(f"Panel {panel.id}: background {element_id} removed")
        return replace(panel, background=None)

    remaining = tuple(e for e in panel.elements if e.id != element_id)
    if len(remaining) == len(panel.elements):
        return panel
    logger.info(f"Panel {panel.id}: element {element_id} removed")
    return replace(panel, elements=remaining)
