"""
Layered Comic — Editing session.

ComicSession ties the stages together for a caller (CLI or UI):
  description → prompt → generated asset → element on the active panel

The comic is an immutable value held in self.comic. Every edit swaps in a
new value. A generation in flight remembers which panel was active when it
was dispatched and lands on whatever the comic looks like when it finishes,
so edits made in the meantime are kept. A failed generation changes nothing.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional, Sequence, Union

from layered_comic import comic as comic_ops
from layered_comic import scene
from layered_comic.config import GenerationContext
from layered_comic.errors import GenerationResult
from layered_comic.generation_client import GenerationClient, GenerationOptions
from layered_comic.models import Comic, Element, ElementType, Panel, new_element, new_id
from layered_comic.script_generator import ScriptGenerator

logger = logging.getLogger(__name__)


class ComicSession:
    """
    One user's editing session over a comic.

    Usage:
        session = ComicSession()
        session.add_empty_panel("Opening")
        result = await session.generate_element("a knight", "character")
        if not result.ok:
            show(result.error)
    """

    def __init__(
        self,
        comic: Optional[Comic] = None,
        client: Optional[GenerationClient] = None,
        script_generator: Optional[ScriptGenerator] = None,
        context: Optional[GenerationContext] = None,
    ):
        self.comic = comic or comic_ops.new_comic()
        self.client = client or GenerationClient()
        self.script_generator = script_generator or ScriptGenerator()
        self.context = context
        self.active_panel_id: Optional[str] = None
        # Generated elements not necessarily placed anywhere yet
        self.library: list[Element] = []

    # ---- panels -------------------------------------------------

    @property
    def active_panel(self) -> Optional[Panel]:
        return comic_ops.get_panel(self.comic, self.active_panel_id)

    def set_active_panel(self, panel_id: Optional[str]) -> bool:
        """Activate a panel by id. Unknown ids are refused."""
        if panel_id is not None and comic_ops.get_panel(self.comic, panel_id) is None:
            logger.warning(f"No panel {panel_id}, active panel unchanged")
            return False
        self.active_panel_id = panel_id
        return True

    def add_empty_panel(self, title: str = comic_ops.DEFAULT_PANEL_TITLE) -> Panel:
        """Append a blank panel and make it the active one."""
        panel = comic_ops.new_panel(title)
        self.comic = comic_ops.add_panel(self.comic, panel)
        self.active_panel_id = self.comic.panels[-1].id
        return self.comic.panels[-1]

    def rename(self, title: str):
        self.comic = comic_ops.rename_comic(self.comic, title)

    def edit_panel(self, panel_id: str, operation: Callable[..., Panel], *args):
        """Apply a scene operation (scene.move, scene.reorder, ...) to one panel."""
        self.comic = comic_ops.update_panel(self.comic, panel_id, operation, *args)

    def edit_active_panel(self, operation: Callable[..., Panel], *args) -> bool:
        if self.active_panel is None:
            return False
        self.edit_panel(self.active_panel_id, operation, *args)
        return True

    # ---- generation ---------------------------------------------

    async def generate_element(
        self,
        description: str,
        element_type: Union[ElementType, str] = ElementType.CHARACTER,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationResult:
        """
        Generate an asset and place it on the active panel.

        Returns:
            GenerationResult whose data is the new Element on success
        """
        element_type = ElementType(element_type)
        target_panel_id = self.active_panel_id

        result = await self.client.generate_element(
            description, element_type, options=options, context=self.context
        )
        if not result.ok:
            logger.error(f"Element generation failed: {result.error}")
            return result

        element = new_element(element_type, result.data, name=description)
        self.library.append(element)

        if target_panel_id is None:
            logger.info(f"Generated {element.id} kept in library (no active panel)")
        elif comic_ops.get_panel(self.comic, target_panel_id) is None:
            logger.info(f"Panel {target_panel_id} is gone, {element.id} kept in library")
        else:
            self.edit_panel(target_panel_id, scene.place, element)

        return GenerationResult.success(element)

    def add_from_library(self, element_id: str) -> bool:
        """Place a copy of a library element on the active panel."""
        element = next((e for e in self.library if e.id == element_id), None)
        if element is None:
            return False
        return self.edit_active_panel(scene.place, replace(element, id=new_id("element")))

    async def generate_script_panels(
        self,
        prompt: str,
        panel_count: int = 4,
        characters: Sequence[str] = (),
        tone: str = "adventure",
    ) -> GenerationResult:
        """Generate a script and append one panel per script line."""
        result = await self.script_generator.generate_script(
            prompt, panel_count, characters, tone, context=self.context
        )
        if not result.ok:
            return result

        panels = comic_ops.panels_from_script(result.data)
        for panel in panels:
            self.comic = comic_ops.add_panel(self.comic, panel)
        logger.info(f"Added {len(panels)} panels from script")
        return GenerationResult.success(panels)

    # ---- output -------------------------------------------------

    def export(self, output_dir: str):
        return comic_ops.export_comic(self.comic, output_dir)

    async def close(self):
        await self.client.close()
        await self.script_generator.close()
