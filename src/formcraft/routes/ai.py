from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from formcraft.routes.deps import read_json, user_guard
from formcraft.suggestions import generate_suggestions

router = APIRouter()


@router.post("/api/ai/suggestions", tags=["api/ai"])
async def api_suggestions(request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    payload = await read_json(request)
    purpose = payload.get("purpose") if isinstance(payload, dict) else None
    suggestions = await generate_suggestions(request.app.state.suggestion_provider, purpose, user_id)
    return JSONResponse(suggestions)
