from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formcraft.auth import TokenAuthProvider
from formcraft.config import Settings
from formcraft.errors import FormcraftError
from formcraft.protocols import Storage
from formcraft.routes.ai import router as ai_router
from formcraft.routes.auth import router as auth_router
from formcraft.routes.forms import router as forms_router
from formcraft.routes.public import router as public_router
from formcraft.routes.responses import router as responses_router
from formcraft.storage import init_storage
from formcraft.suggestions import SuggestionProvider, get_suggestion_provider

logger = logging.getLogger(__name__)


async def formcraft_error_handler(request: Request, exc: FormcraftError) -> JSONResponse:
    status_code = exc.status_code
    if status_code >= 500:
        logger.error("Server error %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("Client error %s %s -> %s: %s", request.method, request.url.path, status_code, exc.message)
    body: dict[str, object] = {
        "success": False,
        "message": exc.message,
        "statusCode": status_code,
    }
    if exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(body, status_code=status_code)


def create_app(
    settings: Settings | None = None,
    storage: Storage | None = None,
    suggestion_provider: SuggestionProvider | None = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="formcraft",
        openapi_tags=[
            {"name": "api/auth", "description": "Registration and login"},
            {"name": "api/forms", "description": "Form design and publishing"},
            {"name": "api/responses", "description": "Responses and analytics"},
            {"name": "api/ai", "description": "AI field suggestions"},
            {"name": "public", "description": "Public form access and uploads"},
            {"name": "system", "description": "System"},
        ],
    )

    app.state.settings = settings
    app.state.storage = storage or init_storage(settings)
    app.state.auth_provider = TokenAuthProvider(settings)
    app.state.suggestion_provider = suggestion_provider or get_suggestion_provider(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FormcraftError, formcraft_error_handler)

    app.include_router(auth_router)
    app.include_router(forms_router)
    app.include_router(responses_router)
    app.include_router(public_router)
    app.include_router(ai_router)

    return app
