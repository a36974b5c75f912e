"""
Layered Comic — Scene model tests.

Covers the value types, layer ordering and the scene mutation API.
No network, no files.

Usage:
    python test_scene_model.py                     # Run all tests
    python test_scene_model.py test_move_layer     # Run one test
    pytest test_scene_model.py
"""

import sys
from dataclasses import replace
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from layered_comic import scene
from layered_comic.layers import (
    LayerDirection,
    move_layer,
    render_order,
    top_z,
    transform,
)
from layered_comic.models import Element, ElementType, Panel, Position, Size, new_element


def make_element(element_id, z=1, element_type=ElementType.CHARACTER, x=0, y=0):
    return Element(
        id=element_id,
        type=element_type,
        image_url=f"data:image/png;base64,{element_id}",
        name=element_id,
        position=Position(x=x, y=y, z=z),
    )


def ids(elements):
    return [e.id for e in elements]


# ============================================================
# Models
# ============================================================

def test_models():
    """Defaults, normalization and validation on construction."""
    element = new_element(ElementType.PROP, "data:image/png;base64,AAAA", name="lamp")
    assert element.id.startswith("element-")
    assert element.size == Size(200, 200)
    assert element.rotation == 0
    assert element.opacity == 1.0
    assert element.is_selected is False

    assert make_element("a").id != new_element(ElementType.PROP, "x").id
    assert new_element(ElementType.PROP, "x").id != new_element(ElementType.PROP, "x").id

    assert replace(element, rotation=-90).rotation == 270
    assert replace(element, rotation=725).rotation == 5
    assert replace(element, rotation=360).rotation == 0
    assert replace(element, opacity=1.7).opacity == 1.0
    assert replace(element, opacity=-0.2).opacity == 0.0

    for width, height in ((0, 10), (10, -1), (float("nan"), 10), (10, float("nan")), (float("inf"), 10)):
        try:
            Size(width, height)
        except ValueError:
            pass
        else:
            raise AssertionError(f"Size({width}, {height}) should be rejected")

    # Selection is session state, not identity
    assert replace(element, is_selected=True) == element

    print("  PASS: Models construct, normalize and validate")


# ============================================================
# Layer ordering
# ============================================================

def test_render_order():
    elements = (
        make_element("x", z=2),
        make_element("y", z=1),
        make_element("w", z=2),
        make_element("v", z=0.5),
    )
    ordered = render_order(elements)
    assert ids(ordered) == ["v", "y", "x", "w"], "ties must keep collection order"
    assert render_order(ordered) == ordered, "sorting must be idempotent"
    assert sorted(ids(ordered)) == sorted(ids(elements)), "every element exactly once"
    assert render_order(()) == ()
    assert top_z(elements) == 2
    assert top_z(()) == 0
    print("  PASS: Render order is stable, total and idempotent")


def test_move_layer():
    elements = (make_element("a", z=1), make_element("b", z=2), make_element("c", z=3))

    raised = move_layer(elements, "a", LayerDirection.UP)
    assert ids(render_order(raised)) == ["b", "a", "c"]
    assert {e.id: e.position.z for e in raised} == {"a": 2, "b": 1, "c": 3}
    assert ids(raised) == ["a", "b", "c"], "storage order is untouched"

    lowered = move_layer(elements, "c", "down")
    assert ids(render_order(lowered)) == ["a", "c", "b"]

    # Extremes and unknown ids leave the collection as it was
    assert move_layer(elements, "c", LayerDirection.UP) == elements
    assert move_layer(elements, "a", LayerDirection.DOWN) == elements
    assert move_layer(elements, "nope", LayerDirection.UP) == elements
    assert move_layer((), "a", LayerDirection.UP) == ()
    print("  PASS: Layer moves swap with the render-order neighbor")


def test_move_layer_neighbor_from_render_order():
    """Raw storage order must not decide who the neighbor is."""
    elements = (make_element("top", z=9), make_element("bottom", z=1), make_element("mid", z=5))
    moved = move_layer(elements, "bottom", LayerDirection.UP)
    assert ids(render_order(moved)) == ["mid", "bottom", "top"]
    print("  PASS: Neighbor comes from render order, not storage order")


def test_move_layer_with_tied_z():
    # All tied: a plain swap would change nothing
    tied = (make_element("a", z=1), make_element("b", z=1), make_element("c", z=1))
    moved = move_layer(tied, "a", LayerDirection.UP)
    assert ids(render_order(moved)) == ["b", "a", "c"]
    assert len({e.position.z for e in moved}) == 3, "no ambiguous ties after a move"

    # A third element sharing the neighbor's z must not let the target jump two steps
    tricky = (make_element("n", z=2), make_element("m", z=2), make_element("a", z=1))
    assert ids(render_order(tricky)) == ["a", "n", "m"]
    moved = move_layer(tricky, "a", LayerDirection.UP)
    assert ids(render_order(moved)) == ["n", "a", "m"]

    moved = move_layer(tricky, "m", LayerDirection.DOWN)
    assert ids(render_order(moved)) == ["a", "m", "n"]
    print("  PASS: Tied z values are re-keyed before swapping")


def test_transform():
    element = make_element("a", x=10, y=20)

    moved = transform(element, x=5)
    assert moved.position == Position(x=5, y=20, z=1)
    assert moved.size == element.size

    resized = transform(element, height=50)
    assert resized.size == Size(width=200, height=50)
    assert resized.position == element.position

    assert transform(element, rotation=-45).rotation == 315
    assert transform(element) == element

    # Non-positive sizes reject the whole transform
    assert transform(element, x=99, width=0) is element
    assert transform(element, height=-3) is element
    assert transform(element, width=float("nan")) is element
    assert transform(element, height=float("inf")) is element
    print("  PASS: Partial transforms keep unspecified fields")


# ============================================================
# Scene mutation API
# ============================================================

def test_select_is_exclusive():
    panel = Panel(id="p1", elements=tuple(make_element(i, z=n) for n, i in enumerate("abcd")))
    for first in "abcd":
        for second in "abcd":
            if first == second:
                continue
            result = scene.select(scene.select(panel, first), second)
            selected = [e.id for e in result.elements if e.is_selected]
            assert selected == [second], f"{first}->{second}: {selected}"

    assert scene.selected_element(scene.select(panel, "c")).id == "c"
    assert scene.selected_element(panel) is None
    print("  PASS: Selection is exclusive within a panel")


def test_select_unknown_id_deselects_all():
    panel = scene.select(Panel(id="p1", elements=(make_element("a"), make_element("b", z=2))), "a")
    result = scene.select(panel, "missing")
    assert not any(e.is_selected for e in result.elements)
    assert not any(e.is_selected for e in scene.deselect_all(panel).elements)
    print("  PASS: Selecting an unknown id clears the selection")


def test_place():
    panel = Panel(id="p1")
    panel = scene.place(panel, make_element("a", z=50))
    assert panel.elements[0].position.z == 1, "first element gets z=1"

    panel = scene.place(panel, make_element("b", z=-4))
    assert panel.elements[1].position.z == 2, "new elements go on top"
    assert ids(render_order(panel.elements))[-1] == "b"

    # Same id again: kept as a separate element with a fresh id
    panel = scene.place(panel, make_element("a"))
    assert len(panel.elements) == 3
    assert len(set(ids(panel.elements))) == 3
    assert panel.elements[2].position.z == 3

    selected = replace(make_element("s"), is_selected=True)
    placed = scene.place(scene.select(panel, "a"), selected)
    assert [e.id for e in placed.elements if e.is_selected] == ["a"]
    print("  PASS: Placed elements land on top with unique ids")


def test_place_background():
    panel = Panel(id="p1", elements=(make_element("a"), make_element("b", z=2)))
    sky = make_element("sky", element_type=ElementType.BACKGROUND)
    castle = make_element("castle", element_type=ElementType.BACKGROUND)

    panel = scene.place(panel, sky)
    assert panel.background.id == "sky"
    assert ids(panel.elements) == ["a", "b"], "backgrounds never join elements"

    panel = scene.place(panel, castle)
    assert panel.background.id == "castle", "second background replaces the first"
    assert ids(panel.elements) == ["a", "b"]
    print("  PASS: Backgrounds only ever occupy the background slot")


def test_move_and_resize():
    panel = Panel(id="p1", elements=(make_element("a", x=1, y=2, z=3), make_element("b", z=4)))

    moved = scene.move(panel, "a", 100, 150)
    assert moved.elements[0].position == Position(x=100, y=150, z=3)
    assert moved.elements[1] == panel.elements[1]

    resized = scene.resize(panel, "a", 320, 240)
    assert resized.elements[0].size == Size(320, 240)
    assert resized.elements[0].position == panel.elements[0].position

    assert scene.resize(panel, "a", 0, 240) == panel
    assert scene.resize(panel, "a", 320, -1).elements[0].size == Size(200, 200)

    assert scene.rotate(panel, "b", 725).elements[1].rotation == 5
    assert scene.set_opacity(panel, "b", 3).elements[1].opacity == 1.0

    # Missing ids degrade to no-ops
    assert scene.move(panel, "gone", 1, 1) is panel
    assert scene.resize(panel, "gone", 10, 10) is panel
    assert scene.rotate(panel, "gone", 10) is panel
    print("  PASS: Move/resize/rotate touch only their own fields")


def test_reorder():
    panel = Panel(id="p1", elements=(make_element("a", z=1), make_element("b", z=2)))
    raised = scene.reorder(panel, "a", "up")
    assert ids(render_order(raised.elements)) == ["b", "a"]
    assert scene.reorder(panel, "b", "up") is panel
    assert scene.reorder(panel, "gone", "down") is panel
    print("  PASS: Reorder delegates to layer moves")


def test_remove():
    panel = Panel(
        id="p1",
        elements=(make_element("a"), make_element("b", z=2)),
        background=make_element("sky", element_type=ElementType.BACKGROUND),
    )
    panel = scene.select(panel, "b")

    result = scene.remove(panel, "b")
    assert ids(result.elements) == ["a"]
    assert scene.selected_element(result) is None

    result = scene.remove(panel, "sky")
    assert result.background is None
    assert ids(result.elements) == ["a", "b"]

    assert scene.remove(panel, "gone") is panel
    print("  PASS: Removal filters elements and clears the background slot")


def test_operations_do_not_mutate_input():
    original = Panel(id="p1", elements=(make_element("a", z=1), make_element("b", z=2)))
    snapshot = (original.elements, original.background)

    scene.select(original, "a")
    scene.place(original, make_element("c"))
    scene.place(original, make_element("bg", element_type=ElementType.BACKGROUND))
    scene.move(original, "a", 9, 9)
    scene.resize(original, "a", 9, 9)
    scene.reorder(original, "a", "up")
    scene.remove(original, "a")

    assert (original.elements, original.background) == snapshot
    assert not any(e.is_selected for e in original.elements)
    assert scene.find_element(original, "a") is original.elements[0]
    print("  PASS: Every operation returns a new panel")


# ============================================================
# Runner
# ============================================================

def main():
    """Run tests."""
    specific = sys.argv[1] if len(sys.argv) > 1 else None

    tests = {
        name: func for name, func in globals().items()
        if name.startswith("test_") and callable(func)
    }

    if specific:
        if specific not in tests:
            print(f"Unknown test: {specific}")
            print(f"Available: {', '.join(tests.keys())}")
            sys.exit(1)
        tests = {specific: tests[specific]}

    passed = 0
    failed = 0

    print("\nScene Model Tests")
    print("=" * 50)

    for name, func in tests.items():
        print(f"\n{name}:")
        try:
            func()
            passed += 1
        except Exception as e:
            print(f"  FAIL: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print("\n" + "=" * 50)
    print(f"Results: {passed} passed, {failed} failed")

    if failed > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
