import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from recipe_lens.app.api.routes import api_router
from recipe_lens.app.core.config import get_settings
from recipe_lens.app.db.session import init_db
from recipe_lens.app.services.url_parsing.html_fetcher import InvalidRecipeUrl

logger = logging.getLogger(__name__)


async def invalid_url_exception_handler(request, exc: InvalidRecipeUrl):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error_code": "invalid_url", "message": str(exc)},
    )


async def validation_exception_handler(request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []) if part is not None)
        msg = err.get("msg", "Invalid value")
        details.append({"field": loc or None, "message": msg})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "validation_error",
            "message": "Invalid request payload.",
            "details": details,
        },
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Recipe Lens", version="0.1.0")
    app.add_exception_handler(InvalidRecipeUrl, invalid_url_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.on_event("startup")
    async def startup_event() -> None:
        init_db()
        logger.info("Database tables ready")

    return app


app = create_app()
