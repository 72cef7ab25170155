from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from formcraft.access import require_owner, require_submittable
from formcraft.analytics import aggregate
from formcraft.errors import NotFound
from formcraft.protocols import Storage
from formcraft.routes.deps import read_json, user_guard
from formcraft.schema import sanitize_response_output
from formcraft.utils import new_ulid, now_utc
from formcraft.validation import check_duplicate, validate_payload_shape, validate_response

logger = logging.getLogger(__name__)

router = APIRouter()


def accept_response(storage: Storage, form: dict[str, Any] | None, body: Any) -> dict[str, Any]:
    """Gate, validate and store one submission; returns the stored response."""
    form = require_submittable(form)
    data = validate_payload_shape(body.get("responseData") if isinstance(body, dict) else None)
    validate_response(form, data)
    if form.get("prevent_duplicates"):
        check_duplicate(form, data, storage.responses.list_responses(form["id"]))

    response = {
        "id": new_ulid(),
        "form_id": form["id"],
        "response_data": data,
        "submitted_at": now_utc(),
    }
    storage.responses.create_response(response)
    logger.info("Response %s stored for form %s", response["id"], form["id"])
    return response


@router.post("/api/forms/{form_id}/responses", tags=["api/responses"])
async def api_submit_response(form_id: str, request: Request) -> JSONResponse:
    storage = request.app.state.storage
    body = await read_json(request)
    response = accept_response(storage, storage.forms.get_form(form_id), body)
    return JSONResponse(sanitize_response_output(response), status_code=201)


@router.get("/api/forms/{form_id}/responses", tags=["api/responses"])
async def api_list_responses(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    storage = request.app.state.storage
    require_owner(storage.forms.get_form(form_id), user_id)
    responses = storage.responses.list_responses(form_id)
    return JSONResponse([sanitize_response_output(item) for item in responses])


@router.get("/api/forms/{form_id}/responses/{response_id}", tags=["api/responses"])
async def api_get_response(
    form_id: str, response_id: str, request: Request, user_id: str = Depends(user_guard)
) -> JSONResponse:
    storage = request.app.state.storage
    require_owner(storage.forms.get_form(form_id), user_id)
    response = storage.responses.get_response(response_id)
    if not response or response["form_id"] != form_id:
        raise NotFound("Response not found")
    return JSONResponse(sanitize_response_output(response))


@router.get("/api/forms/{form_id}/analytics", tags=["api/responses"])
async def api_analytics(form_id: str, request: Request, user_id: str = Depends(user_guard)) -> JSONResponse:
    storage = request.app.state.storage
    form = require_owner(storage.forms.get_form(form_id), user_id)
    return JSONResponse(aggregate(form, storage.responses.list_responses(form_id)))
