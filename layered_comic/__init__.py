"""
Layered Comic — compose multi-panel comics from generated assets.

Each panel is a canvas of z-ordered, transformable elements (characters and
props) over an optional background. Assets come from a hosted text-to-image
model through a client that retries transient out-of-memory failures.

Usage:
    from layered_comic import ComicSession

    session = ComicSession()
    session.add_empty_panel("The gate")
    result = await session.generate_element("a knight", "character")
"""

from layered_comic.errors import ApiError, ErrorKind, GenerationResult, ParseError
from layered_comic.generation_client import GenerationClient, GenerationOptions
from layered_comic.models import (
    Comic,
    Element,
    ElementType,
    ImageModel,
    Panel,
    Position,
    Size,
    StylePreset,
)
from layered_comic.session import ComicSession

__all__ = [
    "ApiError",
    "Comic",
    "ComicSession",
    "Element",
    "ElementType",
    "ErrorKind",
    "GenerationClient",
    "GenerationOptions",
    "GenerationResult",
    "ImageModel",
    "Panel",
    "ParseError",
    "Position",
    "Size",
    "StylePreset",
]
