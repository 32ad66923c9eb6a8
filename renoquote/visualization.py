"""
AI room visualizer.

Builds the Gemini image prompt for a room photo + style, runs the concept
generations in parallel under a time budget, and falls back to placeholder
concepts when Gemini is unavailable or produced nothing.
"""

import logging
import re
import secrets
import string
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Optional

from . import gemini, storage

logger = logging.getLogger("renoquote.visualization")

STYLE_DESCRIPTIONS = {
    "modern": "Clean lines, flat-panel cabinetry, neutral palette with bold accents, integrated lighting, minimal hardware",
    "traditional": "Raised-panel cabinetry, crown moulding, warm wood tones, classic fixtures, symmetrical layout",
    "farmhouse": "Shaker cabinets, apron-front sink, shiplap, reclaimed wood, matte black or brass hardware",
    "industrial": "Exposed brick and metal, concrete surfaces, open shelving, Edison lighting, dark finishes",
    "minimalist": "Handleless storage, monochrome palette, uncluttered surfaces, hidden appliances",
    "contemporary": "Current trends, mixed materials, statement lighting, soft curves, layered textures",
    "other": "A tasteful design that follows the homeowner's stated preferences",
}

ROOM_CONTEXTS = {
    "kitchen": "cabinetry, countertops, backsplash, appliances, island, lighting, flooring",
    "bathroom": "vanity, shower or tub, tile work, fixtures, mirror, lighting",
    "living_room": "flooring, wall finishes, fireplace, built-ins, lighting, furniture layout",
    "bedroom": "flooring, wall finishes, closet, lighting, headboard wall",
    "basement": "flooring, ceiling, lighting, wall finishes, open-concept layout",
    "dining_room": "flooring, lighting fixture, wall finishes, built-in storage",
    "exterior": "siding, roofing, windows, doors, trim, landscaping edges",
    "other": "finishes, fixtures, lighting and flooring appropriate to the space",
}

VARIATION_HINTS = [
    "Explore a slightly warmer color palette while staying true to the style.",
    "Focus more on natural textures and organic materials.",
    "Emphasize clean lines and a more minimalist approach.",
    "Add subtle accent colors and decorative elements.",
]

SHARE_TOKEN_ALPHABET = string.ascii_letters + string.digits
SHARE_TOKEN_LENGTH = 12

_MIME_RE = re.compile(r"^data:([^;]+);base64")


class VisualizationTimeout(Exception):
    """Generation ran past the configured time budget."""


def build_visualization_prompt(
    room_type: str,
    style: str,
    constraints: Optional[str] = None,
    variation_index: int = 0,
    room_label: Optional[str] = None,
    style_label: Optional[str] = None,
) -> str:
    """Image prompt for one concept. variation_index > 0 appends a variation hint."""
    room = room_label or room_type.replace("_", " ")
    style_name = style_label or style
    style_desc = STYLE_DESCRIPTIONS.get(style, STYLE_DESCRIPTIONS["other"])
    room_context = ROOM_CONTEXTS.get(room_type, ROOM_CONTEXTS["other"])

    prompt = f"""Transform this {room} photo into a {style_name} design style renovation.

Style characteristics: {style_desc}

Room focus areas: {room_context}

CRITICAL REQUIREMENTS:
- Maintain the exact same room layout, dimensions, and architecture from the input photo
- Keep the camera angle and perspective identical to the original
- Preserve windows, doors, and structural elements in their exact positions
- Apply the {style_name} aesthetic to fixtures, finishes, colors, and decor
- Ensure realistic lighting that matches the original room's light sources
- Make the transformation believable as a real renovation result
- High quality, photorealistic output suitable for showing to clients
- Generate a single image showing the renovated room"""

    if constraints:
        prompt += f"\n\nUser preferences: {constraints}"

    if variation_index > 0:
        hint = VARIATION_HINTS[variation_index % len(VARIATION_HINTS)]
        prompt += f"\n\nVariation {variation_index + 1}: {hint}"

    prompt += (
        "\n\nGenerate a photorealistic visualization showing how this room would look "
        f"after a professional {style_name} renovation. Output an image."
    )
    return prompt


def concept_description(room_type: str, style: str, index: int) -> str:
    return f"{style[:1].upper()}{style[1:]} {room_type.replace('_', ' ')} design - Concept {index + 1}"


def generate_placeholder_concepts(room_type: str, style: str, count: int = 4) -> list[dict]:
    """Stock-photo concepts for demos and when Gemini is unavailable."""
    now = datetime.utcnow()
    stamp = int(now.timestamp() * 1000)
    return [
        {
            "id": f"placeholder-{i + 1}-{stamp}",
            "image_url": f"https://picsum.photos/seed/{room_type}-{style}-{i}/1024/768",
            "description": concept_description(room_type, style, i),
            "generated_at": now.isoformat(),
        }
        for i in range(count)
    ]


def generate_share_token() -> str:
    return "".join(secrets.choice(SHARE_TOKEN_ALPHABET) for _ in range(SHARE_TOKEN_LENGTH))


def get_device_type(user_agent: Optional[str]) -> str:
    ua = (user_agent or "").lower()
    if "mobile" in ua:
        return "mobile"
    if "tablet" in ua:
        return "tablet"
    return "desktop"


def extract_mime_type(image_data_url: str) -> str:
    match = _MIME_RE.match(image_data_url or "")
    return match.group(1) if match else "image/jpeg"


def _generate_one(
    image_data_url: str,
    room_type: str,
    style: str,
    constraints: Optional[str],
    index: int,
    timeout: float,
    labels: tuple = (None, None),
) -> Optional[dict]:
    prompt = build_visualization_prompt(room_type, style, constraints, index, *labels)
    try:
        image = gemini.generate_image(
            prompt,
            image_base64=image_data_url,
            mime_type=extract_mime_type(image_data_url),
            timeout=timeout,
        )
        if not image:
            return None
        url = storage.store_generated_image(image["base64"], image["mime_type"])
    except Exception:
        logger.exception("Concept %d generation failed", index + 1)
        return None

    return {
        "id": f"concept-{index + 1}-{int(time.time() * 1000)}",
        "image_url": url,
        "description": concept_description(room_type, style, index),
        "generated_at": datetime.utcnow().isoformat(),
    }


def generate_concepts(
    image_data_url: str,
    room_type: str,
    style: str,
    constraints: Optional[str] = None,
    count: int = 4,
    timeout_seconds: float = 90,
    room_label: Optional[str] = None,
    style_label: Optional[str] = None,
) -> list[dict]:
    """
    Generate `count` concepts in parallel.

    Placeholders when Gemini isn't configured or every concept failed.
    Raises VisualizationTimeout if nothing finished inside the time budget.
    """
    if not gemini.is_configured():
        logger.warning("GEMINI_API_KEY not set, using placeholder concepts")
        return generate_placeholder_concepts(room_type, style, count)

    started = time.monotonic()
    pool = ThreadPoolExecutor(max_workers=count)
    try:
        futures = [
            pool.submit(
                _generate_one, image_data_url, room_type, style, constraints, i,
                timeout_seconds, (room_label, style_label),
            )
            for i in range(count)
        ]
        done, not_done = wait(futures, timeout=timeout_seconds)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    concepts = [f.result() for f in futures if f in done and f.result()]

    if not_done and not concepts:
        elapsed = time.monotonic() - started
        raise VisualizationTimeout(f"Generation timed out after {elapsed:.0f}s")

    if not concepts:
        logger.warning("No Gemini images generated, falling back to placeholders")
        return generate_placeholder_concepts(room_type, style, count)

    if len(concepts) < count:
        logger.warning("Only generated %d/%d concepts", len(concepts), count)
    logger.info("Generated %d %s %s concepts in %.1fs",
                len(concepts), style, room_type, time.monotonic() - started)
    return concepts
