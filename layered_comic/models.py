"""
Layered Comic — Data models.

Immutable dataclasses for the scene composition model:
Element → Panel → Comic.

Every edit produces a new value (see scene.py and comic.py); nothing here
is mutated in place once constructed.
"""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# ============================================================
# Style presets and image models
# ============================================================

class StylePreset(Enum):
    """Visual style prepended to every image prompt."""

    PIXEL_ART = "PIXEL_ART"
    COMIC_BOOK = "COMIC_BOOK"
    REALISTIC = "REALISTIC"
    CARTOON = "CARTOON"


STYLE_PRESETS = {
    StylePreset.PIXEL_ART: "isometric pixel art, 16-bit style",
    StylePreset.COMIC_BOOK: "comic book art style, cel shaded",
    StylePreset.REALISTIC: "realistic 3D render, high detail",
    StylePreset.CARTOON: "cartoon style, vibrant colors",
}


class ImageModel(Enum):
    """Hosted text-to-image models the generation client can target."""

    STABLE_DIFFUSION = "STABLE_DIFFUSION"
    STABLE_DIFFUSION_XL = "STABLE_DIFFUSION_XL"
    KANDINSKY = "KANDINSKY"


IMAGE_MODELS = {
    ImageModel.STABLE_DIFFUSION: "stabilityai/stable-diffusion-2",
    ImageModel.STABLE_DIFFUSION_XL: "stabilityai/stable-diffusion-xl-base-1.0",
    ImageModel.KANDINSKY: "kandinsky-community/kandinsky-2-2",
}

DEFAULT_STYLE = StylePreset.COMIC_BOOK
DEFAULT_MODEL = ImageModel.STABLE_DIFFUSION


def get_style_text(style: StylePreset = DEFAULT_STYLE) -> str:
    """Get the prompt text for a style preset."""
    return STYLE_PRESETS[style]


# ============================================================
# Scene elements
# ============================================================

class ElementType(Enum):
    CHARACTER = "character"
    PROP = "prop"
    BACKGROUND = "background"


# Default footprint for freshly generated assets
DEFAULT_ELEMENT_WIDTH = 200
DEFAULT_ELEMENT_HEIGHT = 200


def new_id(prefix: str) -> str:
    """Opaque unique id. uuid4-based, so removed ids are never handed out again."""
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Position:
    """Canvas position. Origin top-left, y grows downward; z is a sort key, not a rank."""
    x: float = 0.0
    y: float = 0.0
    z: float = 1.0


@dataclass(frozen=True)
class Size:
    width: float = DEFAULT_ELEMENT_WIDTH
    height: float = DEFAULT_ELEMENT_HEIGHT

    def __post_init__(self):
        if not (0 < self.width < math.inf and 0 < self.height < math.inf):
            raise ValueError(
                f"Size must be positive and finite, got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class Element:
    """A positioned visual asset (character, prop or background)."""
    id: str
    type: ElementType
    image_url: str
    name: str = ""
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    rotation: float = 0.0      # Degrees, kept in [0, 360)
    opacity: float = 1.0       # 0.0 - 1.0
    # Editing-session flag only: ignored by equality and never persisted
    is_selected: bool = field(default=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "rotation", self.rotation % 360)
        object.__setattr__(self, "opacity", min(1.0, max(0.0, self.opacity)))

    @property
    def is_background(self) -> bool:
        return self.type is ElementType.BACKGROUND


def new_element(
    element_type: ElementType,
    image_url: str,
    name: str = "",
    x: float = 0.0,
    y: float = 0.0,
    width: float = DEFAULT_ELEMENT_WIDTH,
    height: float = DEFAULT_ELEMENT_HEIGHT,
) -> Element:
    """Create an element with a fresh id at the given spot."""
    return Element(
        id=new_id("element"),
        type=element_type,
        image_url=image_url,
        name=name,
        position=Position(x=x, y=y, z=1),
        size=Size(width=width, height=height),
    )


# ============================================================
# Panels and the comic
# ============================================================

@dataclass(frozen=True)
class Panel:
    """One frame of the comic: a background plus layered elements."""
    id: str
    title: str = "New panel"
    # Insertion order. Render order comes from layers.render_order().
    elements: tuple[Element, ...] = ()
    background: Optional[Element] = None

    @property
    def element_count(self) -> int:
        return len(self.elements)


@dataclass(frozen=True)
class Comic:
    """Root aggregate. Panel order is reading order."""
    id: str
    title: str = "My Comic"
    panels: tuple[Panel, ...] = ()

    @property
    def panel_count(self) -> int:
        return len(self.panels)

    def format_summary(self) -> str:
        """Human-readable outline of the comic for terminals and logs."""
        lines = [
            f"COMIC: {self.title}",
            f"{'=' * 50}",
            f"PANELS ({len(self.panels)}):",
            "-" * 40,
        ]
        for number, panel in enumerate(self.panels, start=1):
            lines.append(f"Panel {number} [{panel.id}]: {panel.title}")
            if panel.background:
                lines.append(f"  Background: {panel.background.name or panel.background.id}")
            for element in panel.elements:
                marker = "*" if element.is_selected else " "
                lines.append(
                    f" {marker} {element.type.value:<9} {element.name or element.id} "
                    f"@ ({element.position.x:g}, {element.position.y:g}) z={element.position.z:g} "
                    f"{element.size.width:g}x{element.size.height:g}"
                )
            lines.append("")
        return "\n".join(lines)
