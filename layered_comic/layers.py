"""
Layered Comic — Geometry & layer ordering.

Pure functions over element collections. Nothing here touches I/O.

z is a sort key, not a rank: the render order is a stable sort by
position.z, and equal keys keep their collection order. Layer moves always
pick the neighbor from that derived order, never from raw storage.
"""

import math
from dataclasses import replace
from enum import Enum
from typing import Iterable, Optional, Union

from layered_comic.models import Element


class LayerDirection(Enum):
    UP = "up"        # Toward the viewer
    DOWN = "down"    # Toward the background


def normalize_rotation(degrees: float) -> float:
    """Wrap any angle into [0, 360)."""
    return degrees % 360


def clamp_opacity(value: float) -> float:
    return min(1.0, max(0.0, value))


def render_order(elements: Iterable[Element]) -> tuple[Element, ...]:
    """Back-to-front draw order: stable sort by z, ties keep collection order."""
    return tuple(sorted(elements, key=lambda e: e.position.z))


def top_z(elements: Iterable[Element]) -> float:
    """Highest z in the collection, or 0 when empty."""
    return max((e.position.z for e in elements), default=0)


def _with_z(element: Element, z: float) -> Element:
    return replace(element, position=replace(element.position, z=z))


def _rekey(elements: tuple[Element, ...]) -> tuple[Element, ...]:
    """Give every element a distinct z (1..n) matching the current render order."""
    ranks = {e.id: rank for rank, e in enumerate(render_order(elements), start=1)}
    return tuple(_with_z(e, ranks[e.id]) for e in elements)


def move_layer(
    elements: Iterable[Element],
    target_id: str,
    direction: Union[LayerDirection, str],
) -> tuple[Element, ...]:
    """
    Move one element a single step up or down the render order.

    The target swaps z keys with its immediate neighbor in render order.
    Already at the top (UP) or bottom (DOWN), or an unknown id: the
    collection comes back unchanged.

    If any two elements share a z value the collection is first re-keyed
    to distinct values (1..n in render order), so the swap always moves the
    target exactly one step.
    """
    direction = LayerDirection(direction)
    elements = tuple(elements)
    ordered = render_order(elements)

    index = next((i for i, e in enumerate(ordered) if e.id == target_id), None)
    if index is None:
        return elements

    neighbor_index = index + 1 if direction is LayerDirection.UP else index - 1
    if neighbor_index < 0 or neighbor_index >= len(ordered):
        return elements

    target = ordered[index]
    neighbor = ordered[neighbor_index]

    if len({e.position.z for e in elements}) < len(elements):
        elements = _rekey(elements)
        keyed = {e.id: e for e in elements}
        target, neighbor = keyed[target.id], keyed[neighbor.id]

    target_z, neighbor_z = target.position.z, neighbor.position.z
    swapped = []
    for element in elements:
        if element.id == target.id:
            element = _with_z(element, neighbor_z)
        elif element.id == neighbor.id:
            element = _with_z(element, target_z)
        swapped.append(element)
    return tuple(swapped)


def valid_dimension(value: Optional[float]) -> bool:
    return value is None or (value > 0 and not math.isinf(value))


def transform(
    element: Element,
    x: Optional[float] = None,
    y: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    rotation: Optional[float] = None,
) -> Element:
    """
    Partial update of placement fields. Anything left as None is kept.

    A non-positive width or height rejects the whole transform and the
    element is returned as-is.
    """
    if not (valid_dimension(width) and valid_dimension(height)):
        return element

    position = element.position
    if x is not None or y is not None:
        position = replace(
            position,
            x=position.x if x is None else x,
            y=position.y if y is None else y,
        )

    size = element.size
    if width is not None or height is not None:
        size = replace(
            size,
            width=size.width if width is None else width,
            height=size.height if height is None else height,
        )

    return replace(
        element,
        position=position,
        size=size,
        rotation=element.rotation if rotation is None else normalize_rotation(rotation),
    )
