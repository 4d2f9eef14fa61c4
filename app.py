import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.generate.router import router as generate_router
from config import Settings, load_bind_address, load_settings

logger = logging.getLogger(__name__)

INDEX_PAGE = Path(__file__).with_name("static") / "index.html"


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(item) for item in first.get("loc", ()) if item != "body")
        message = f"Invalid request: {location}: {first.get('msg')}" if location else f"Invalid request: {first.get('msg')}"
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(title="Gemini Image Studio", version="1.0.0")
    app.state.settings = settings or load_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[],              # keep empty when using regex
        allow_origin_regex=".*",       # matches any origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(generate_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/", include_in_schema=False)
    def index() -> FileResponse:
        return FileResponse(INDEX_PAGE, media_type="text/html")

    if not app.state.settings.gemini_api_key:
        logger.info("No default GEMINI_API_KEY configured; requests must carry apiKey")
    return app


app = create_app()


def main() -> int:
    settings = app.state.settings
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host, port = load_bind_address()
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
