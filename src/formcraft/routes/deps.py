from __future__ import annotations

from typing import Any

from fastapi import Request

from formcraft.errors import ValidationFailed


def user_guard(request: Request) -> str:
    return request.app.state.auth_provider.require_user(request)


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationFailed("Request body must be valid JSON") from exc
