"""
CLI entry point for Layered Comic.

Usage:
    python -m layered_comic new "My Comic"                         # Start a fresh comic
    python -m layered_comic show                                   # Print panels and elements
    python -m layered_comic add-panel "The gate"                   # Append an empty panel
    python -m layered_comic generate 1 character "a knight"        # Generate onto panel 1
    python -m layered_comic generate 1 background "castle" --style CARTOON --model KANDINSKY
    python -m layered_comic script "a lost robot" --panels 4       # Script → new panels
    python -m layered_comic move 1 <element_id> 120 80             # Move an element
    python -m layered_comic resize 1 <element_id> 300 240          # Resize an element
    python -m layered_comic rotate 1 <element_id> 45               # Rotate an element
    python -m layered_comic layer 1 <element_id> up                # Raise/lower one step
    python -m layered_comic remove 1 <element_id>                  # Remove an element
    python -m layered_comic export [dir]                           # Write <Title>.json
    python -m layered_comic set-key <token>                        # Save the API token

The working comic lives in data/comic.json. The API token is read from
HUGGINGFACE_API_KEY (or .env) first, then from data/settings.yaml.
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from layered_comic import comic as comic_ops
from layered_comic import scene
from layered_comic.comic import ComicStore
from layered_comic.config import SettingsStore, load_context, set_default_context
from layered_comic.generation_client import GenerationOptions
from layered_comic.models import ElementType, ImageModel, StylePreset
from layered_comic.session import ComicSession

# Commands that take: <panel#> <element_id> [args...]
ELEMENT_COMMANDS = {
    "move": (scene.move, (float, float)),
    "resize": (scene.resize, (float, float)),
    "rotate": (scene.rotate, (float,)),
    "layer": (scene.reorder, (str,)),
    "remove": (scene.remove, ()),
}


def _pop_flag(args: list, name: str, default=None):
    """Remove '--name value' from args and return value."""
    if name in args:
        idx = args.index(name)
        if idx + 1 < len(args):
            value = args[idx + 1]
            del args[idx:idx + 2]
            return value
        del args[idx]
    return default


def _panel_id(session: ComicSession, number: str):
    """1-based panel number → panel id, or None with a message."""
    try:
        index = int(number) - 1
    except ValueError:
        print(f"Not a panel number: {number}")
        return None
    if not 0 <= index < len(session.comic.panels):
        print(f"No panel {number} (comic has {len(session.comic.panels)})")
        return None
    return session.comic.panels[index].id


async def _generate(session: ComicSession, args: list) -> bool:
    style = _pop_flag(args, "--style", StylePreset.COMIC_BOOK.value)
    model = _pop_flag(args, "--model", ImageModel.STABLE_DIFFUSION.value)
    if len(args) < 3:
        print('Usage: python -m layered_comic generate <panel#> <character|prop|background> "description"')
        return False

    panel_id = _panel_id(session, args[0])
    if panel_id is None:
        return False
    try:
        element_type = ElementType(args[1])
        options = GenerationOptions(model=ImageModel(model.upper()), style=StylePreset(style.upper()))
    except ValueError as e:
        print(f"Invalid option: {e}")
        return False

    session.set_active_panel(panel_id)
    result = await session.generate_element(" ".join(args[2:]), element_type, options)
    if not result.ok:
        print(f"{result.error.title}: {result.error.detail}")
        return False
    print(f"Added {element_type.value} {result.data.id} to panel {args[0]}")
    return True


async def _script(session: ComicSession, args: list) -> bool:
    try:
        panels = int(_pop_flag(args, "--panels", "4"))
    except ValueError:
        print("--panels needs a number")
        return False
    if not args:
        print('Usage: python -m layered_comic script "story idea" [--panels N]')
        return False
    result = await session.generate_script_panels(" ".join(args), panels)
    if not result.ok:
        print(f"{result.error.title}: {result.error.detail}")
        return False
    for panel in result.data:
        print(f"  + {panel.title}")
    return True


def _edit_element(session: ComicSession, command: str, args: list) -> bool:
    operation, arg_types = ELEMENT_COMMANDS[command]
    if len(args) != 2 + len(arg_types):
        print(f"Usage: python -m layered_comic {command} <panel#> <element_id> "
              + " ".join(t.__name__ for t in arg_types))
        return False
    panel_id = _panel_id(session, args[0])
    if panel_id is None:
        return False
    try:
        values = [t(v) for t, v in zip(arg_types, args[2:])]
    except ValueError:
        print(f"Invalid arguments for {command}: {' '.join(args[2:])}")
        return False

    panel = comic_ops.get_panel(session.comic, panel_id)
    if scene.find_element(panel, args[1]) is None:
        print(f"No element {args[1]} in panel {args[0]}")
        return False
    try:
        session.edit_panel(panel_id, operation, args[1], *values)
    except ValueError as e:
        print(f"Invalid arguments for {command}: {e}")
        return False
    return True


async def _dispatch(session: ComicSession, command: str, args: list) -> bool:
    """Run one command. Returns True when the comic changed."""
    try:
        if command == "new":
            session.comic = comic_ops.new_comic(" ".join(args) or comic_ops.DEFAULT_COMIC_TITLE)
            print(f"New comic: {session.comic.title}")
            return True

        if command == "show":
            print(session.comic.format_summary())
            return False

        if command == "add-panel":
            panel = session.add_empty_panel(" ".join(args) or comic_ops.DEFAULT_PANEL_TITLE)
            print(f"Added panel {len(session.comic.panels)}: {panel.title}")
            return True

        if command == "generate":
            return await _generate(session, args)

        if command == "script":
            return await _script(session, args)

        if command in ELEMENT_COMMANDS:
            return _edit_element(session, command, args)

        if command == "export":
            path = session.export(args[0] if args else ".")
            print(f"Exported: {path}")
            return False

        print(f"Unknown command: {command}")
        print(__doc__)
        return False
    finally:
        await session.close()


def main():
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    if len(sys.argv) < 2:
        print(__doc__)
        return

    command = sys.argv[1]
    args = sys.argv[2:]
    settings = SettingsStore()

    if command == "set-key":
        if not args:
            print("Usage: python -m layered_comic set-key <token>")
            return
        settings.save_api_key(args[0])
        print("API token saved.")
        return

    context = load_context(settings=settings)
    set_default_context(context)

    store = ComicStore()
    session = ComicSession(comic=store.load(), context=context)
    if asyncio.run(_dispatch(session, command, args)):
        store.save(session.comic)


if __name__ == "__main__":
    main()
