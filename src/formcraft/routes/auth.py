from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from formcraft.auth import authenticate_user, public_user, register_user
from formcraft.errors import NotFound
from formcraft.routes.deps import read_json, user_guard

router = APIRouter()


@router.post("/api/auth/register", tags=["api/auth"])
async def api_register(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    user = register_user(storage, await read_json(request))
    token = request.app.state.auth_provider.issue_token(user)
    return JSONResponse({"user": public_user(user), "token": token}, status_code=201)


@router.post("/api/auth/login", tags=["api/auth"])
async def api_login(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    user = authenticate_user(storage, await read_json(request))
    token = request.app.state.auth_provider.issue_token(user)
    return JSONResponse({"user": public_user(user), "token": token})


@router.get("/api/auth/me", tags=["api/auth"])
async def api_me(request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    user = request.app.state.storage.users.get_user(user_id)
    if not user:
        raise NotFound("User not found")
    return JSONResponse(public_user(user))
