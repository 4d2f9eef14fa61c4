import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.generate.schemas import ErrorResponse, GenerateRequest, GenerateResponse
from config import Settings
from gemini_image import ImageGenerationError
from .service import GenerationRequestError, generate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def generate_route(
    request: GenerateRequest,
    settings: Settings = Depends(get_settings),
) -> GenerateResponse:
    try:
        return generate(
            request,
            default_api_key=settings.gemini_api_key,
            default_model=settings.default_model,
        )
    except GenerationRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ImageGenerationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Generation error: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc) or "Failed to generate image") from exc
