import logging
from dataclasses import dataclass
from typing import Any

from google import genai
from google.genai import types

from config import DEFAULT_IMAGE_MODEL
from utils import DEFAULT_IMAGE_MIME, encode_image_data

logger = logging.getLogger(__name__)


RESPONSE_MODALITIES = ["TEXT", "IMAGE"]
# Only this model accepts explicit aspect-ratio / image-size controls.
IMAGE_CONFIG_MODEL = "gemini-3-pro-image-preview"


class ImageGenerationError(Exception):
    """Gemini answered, but the answer holds nothing we can show."""


class NoCandidatesError(ImageGenerationError):
    def __init__(self) -> None:
        super().__init__("No image generated")


class NoImagePartError(ImageGenerationError):
    def __init__(self) -> None:
        super().__init__("No image in response")


@dataclass
class GeneratedImage:
    image: str
    text: str | None = None


def build_contents(
    prompt: str,
    edit_image: bytes | None = None,
    edit_mime_type: str = DEFAULT_IMAGE_MIME,
) -> list[types.Content]:
    parts = [types.Part.from_text(text=prompt)]
    if edit_image is not None:
        parts.append(types.Part.from_bytes(data=edit_image, mime_type=edit_mime_type))
    return [types.Content(role="user", parts=parts)]


def build_generation_config(
    model_name: str,
    aspect_ratio: str = "1:1",
    image_size: str = "1K",
) -> types.GenerateContentConfig:
    if model_name == IMAGE_CONFIG_MODEL:
        return types.GenerateContentConfig(
            response_modalities=RESPONSE_MODALITIES,
            image_config=types.ImageConfig(aspect_ratio=aspect_ratio, image_size=image_size),
        )
    return types.GenerateContentConfig(response_modalities=RESPONSE_MODALITIES)


def extract_generated_image(response: Any) -> GeneratedImage:
    """Scan the first candidate's parts once, keeping the first caption and the first image.

    Thought parts emitted by thinking models are skipped; they are drafts, not the answer.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise NoCandidatesError()

    content = candidates[0].content
    parts = (content.parts if content else None) or []

    text: str | None = None
    image: str | None = None
    for part in parts:
        if getattr(part, "thought", None):
            continue
        if text is None and part.text:
            text = part.text
        inline_data = part.inline_data
        if image is None and inline_data is not None and inline_data.data:
            image = encode_image_data(inline_data.data)
            logger.debug("Gemini image part mime_type=%s", inline_data.mime_type)

    if image is None:
        raise NoImagePartError()
    return GeneratedImage(image=image, text=text)


def generate_image(
    prompt: str,
    api_key: str,
    model_name: str = DEFAULT_IMAGE_MODEL,
    aspect_ratio: str = "1:1",
    image_size: str = "1K",
    edit_image: bytes | None = None,
    edit_mime_type: str = DEFAULT_IMAGE_MIME,
) -> GeneratedImage:
    logger.info(
        "Calling Gemini image model=%s prompt_len=%d edit_image=%s",
        model_name,
        len(prompt or ""),
        edit_image is not None,
    )
    logger.debug("Prompt preview: %s", (prompt or "")[:1000])

    try:
        client = genai.Client(api_key=api_key)
        response = client.models.generate_content(
            model=model_name,
            contents=build_contents(prompt, edit_image=edit_image, edit_mime_type=edit_mime_type),
            config=build_generation_config(model_name, aspect_ratio=aspect_ratio, image_size=image_size),
        )
    except Exception:
        logger.exception("Gemini image request failed for model=%s", model_name)
        raise

    try:
        result = extract_generated_image(response)
    except ImageGenerationError as exc:
        logger.warning("Gemini returned no usable image model=%s reason=%s", model_name, exc)
        raise

    logger.info(
        "Gemini image received model=%s image_len=%d caption_len=%d",
        model_name,
        len(result.image),
        len(result.text or ""),
    )
    return result
