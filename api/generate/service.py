import logging

from api.generate.schemas import GenerateRequest, GenerateResponse
from config import DEFAULT_IMAGE_MODEL
from gemini_image import generate_image
from utils import DEFAULT_IMAGE_MIME, decode_data_uri, to_data_uri

logger = logging.getLogger(__name__)


class GenerationRequestError(ValueError):
    """The request cannot be forwarded as sent."""


def _resolve_api_key(explicit_key: str | None, default_key: str | None) -> str:
    resolved = (explicit_key or "").strip() or (default_key or "").strip()
    if not resolved:
        raise GenerationRequestError("API key required")
    return resolved


def generate(
    request: GenerateRequest,
    default_api_key: str | None = None,
    default_model: str = DEFAULT_IMAGE_MODEL,
) -> GenerateResponse:
    if not (request.prompt or "").strip():
        raise GenerationRequestError("Prompt required")

    api_key = _resolve_api_key(request.api_key, default_api_key)
    model_name = (request.model or "").strip() or default_model

    edit_bytes = None
    edit_mime_type = DEFAULT_IMAGE_MIME
    if request.edit_image:
        try:
            edit_mime_type, edit_bytes = decode_data_uri(request.edit_image)
        except ValueError as exc:
            raise GenerationRequestError(f"Invalid editImage: {exc}") from exc

    logger.info(
        "generate called model=%s api_key_provided=%s edit_mode=%s",
        model_name,
        bool((request.api_key or "").strip()),
        edit_bytes is not None,
    )

    result = generate_image(
        request.prompt,
        api_key=api_key,
        model_name=model_name,
        aspect_ratio=request.aspect_ratio,
        image_size=request.image_size,
        edit_image=edit_bytes,
        edit_mime_type=edit_mime_type,
    )
    return GenerateResponse(image=to_data_uri(result.image), text=result.text or "")
