from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from formcraft.access import DRAFT, publish_updates, require_owner, unpublish_updates
from formcraft.errors import ValidationFailed
from formcraft.schema import merge_suggested_fields, sanitize_form_output, validate_form_payload
from formcraft.routes.deps import read_json, user_guard
from formcraft.utils import new_ulid, now_utc

logger = logging.getLogger(__name__)

router = APIRouter()


def _owned_form(request: Request, form_id: str, user_id: str) -> dict[str, Any]:
    return require_owner(request.app.state.storage.forms.get_form(form_id), user_id)


@router.post("/api/forms", tags=["api/forms"])
async def api_create_form(request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    storage = request.app.state.storage
    values = validate_form_payload(await read_json(request))
    form_id = new_ulid()
    now = now_utc()
    storage.forms.create_form(
        {
            "id": form_id,
            "user_id": user_id,
            **values,
            "publish_status": DRAFT,
            "shareable_url": None,
            "created_at": now,
            "updated_at": now,
        }
    )
    logger.info("Form %s created by %s", form_id, user_id)
    form = storage.forms.get_form(form_id)
    return JSONResponse(sanitize_form_output(form or {}), status_code=201)


@router.get("/api/forms", tags=["api/forms"])
async def api_list_forms(request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    forms = request.app.state.storage.forms.list_forms(user_id)
    return JSONResponse([sanitize_form_output(form) for form in forms])


@router.get("/api/forms/{form_id}", tags=["api/forms"])
async def api_get_form(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    return JSONResponse(sanitize_form_output(_owned_form(request, form_id, user_id)))


@router.put("/api/forms/{form_id}", tags=["api/forms"])
async def api_update_form(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    _owned_form(request, form_id, user_id)
    updates = validate_form_payload(await read_json(request), partial=True)
    updates["updated_at"] = now_utc()
    updated = request.app.state.storage.forms.update_form(form_id, updates)
    return JSONResponse(sanitize_form_output(updated))


@router.delete("/api/forms/{form_id}", tags=["api/forms"])
async def api_delete_form(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> Response:
    storage = request.app.state.storage
    _owned_form(request, form_id, user_id)
    storage.responses.delete_responses_for_form(form_id)
    storage.forms.delete_form(form_id)
    logger.info("Form %s deleted by %s", form_id, user_id)
    return Response(status_code=204)


@router.post("/api/forms/{form_id}/publish", tags=["api/forms"])
async def api_publish_form(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    form = _owned_form(request, form_id, user_id)
    updates = publish_updates(form)
    updates["updated_at"] = now_utc()
    updated = request.app.state.storage.forms.update_form(form_id, updates)
    logger.info("Form %s published as %s", form_id, updated.get("shareable_url"))
    return JSONResponse(sanitize_form_output(updated))


@router.post("/api/forms/{form_id}/unpublish", tags=["api/forms"])
async def api_unpublish_form(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    _owned_form(request, form_id, user_id)
    updates = unpublish_updates()
    updates["updated_at"] = now_utc()
    updated = request.app.state.storage.forms.update_form(form_id, updates)
    logger.info("Form %s unpublished", form_id)
    return JSONResponse(sanitize_form_output(updated))


@router.post("/api/forms/{form_id}/suggested-fields", tags=["api/forms"])
async def api_append_suggestions(
    form_id: str, request: Request, user_id: str = Depends(user_guard)
) -> JSONResponse:
    form = _owned_form(request, form_id, user_id)
    payload = await read_json(request)
    suggestions = payload.get("suggestions") if isinstance(payload, dict) else None
    if not isinstance(suggestions, list) or not all(isinstance(item, dict) for item in suggestions):
        raise ValidationFailed("suggestions must be a list of field suggestions")
    fields = merge_suggested_fields(form.get("fields", []), suggestions)
    updated = request.app.state.storage.forms.update_form(
        form_id, {"fields": fields, "updated_at": now_utc()}
    )
    return JSONResponse(sanitize_form_output(updated))
