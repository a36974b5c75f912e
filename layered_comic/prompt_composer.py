"""
Layered Comic — Prompt composer.

Turns a user description into the (prompt, negative prompt) pair sent to the
image model. Pure and deterministic; the model seed is not part of it.
"""

from typing import Optional, Union

from layered_comic.models import DEFAULT_STYLE, ElementType, StylePreset, get_style_text

QUALITY_BOOSTERS = "high quality, detailed"

# Composition hints appended after the quality boosters
TYPE_HINTS = {
    ElementType.CHARACTER: (
        "single character centered, full body pose, clean edges, "
        "white background, no text"
    ),
    ElementType.PROP: "single object centered, clean edges, white background, no text",
    ElementType.BACKGROUND: "detailed environment, establishing shot, no characters, no text",
}

_COMMON_NEGATIVE = "blurry, low quality, text, watermark, signature"

NEGATIVE_PROMPTS = {
    ElementType.CHARACTER: (
        f"{_COMMON_NEGATIVE}, extra limbs, deformed, multiple characters, "
        "cropped body, cluttered background"
    ),
    ElementType.PROP: (
        f"{_COMMON_NEGATIVE}, people, hands, multiple objects, "
        "cropped, cluttered background"
    ),
    ElementType.BACKGROUND: (
        f"{_COMMON_NEGATIVE}, people, characters, animals, "
        "close-up, foreground objects"
    ),
}


def compose(
    description: str,
    asset_type: Union[ElementType, str],
    style: Union[StylePreset, str] = DEFAULT_STYLE,
    negative_override: Optional[str] = None,
) -> tuple[str, str]:
    """
    Build the prompt pair for one asset.

    Args:
        description: What the user asked for (e.g. "a knight")
        asset_type: character, prop or background
        style: Style preset (enum or its name, e.g. "COMIC_BOOK")
        negative_override: Replaces the per-type exclusion list when given

    Returns:
        (positive_prompt, negative_prompt)
    """
    asset_type = ElementType(asset_type)
    style = StylePreset(style)

    positive = (
        f"{get_style_text(style)}, {description.strip()}, "
        f"{QUALITY_BOOSTERS}, {TYPE_HINTS[asset_type]}"
    )
    negative = negative_override if negative_override else NEGATIVE_PROMPTS[asset_type]
    return positive, negative
