from __future__ import annotations

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from formcraft.access import require_submittable
from formcraft.routes.deps import read_json
from formcraft.routes.responses import accept_response
from formcraft.schema import sanitize_form_output, sanitize_response_output
from formcraft.uploads import resolve_upload_path, save_upload

router = APIRouter()


@router.get("/api/public/forms/{token}", tags=["public"])
async def public_form(token: str, request: Request) -> JSONResponse:
    storage = request.app.state.storage
    form = require_submittable(storage.forms.get_form_by_share_token(token))
    output = sanitize_form_output(form)
    output.pop("userId", None)
    return JSONResponse(output)


@router.post("/api/public/forms/{token}/responses", tags=["public"])
async def public_submit(token: str, request: Request) -> JSONResponse:
    storage = request.app.state.storage
    body = await read_json(request)
    response = accept_response(storage, storage.forms.get_form_by_share_token(token), body)
    return JSONResponse(sanitize_response_output(response), status_code=201)


@router.post("/api/upload", tags=["public"])
async def upload_file(request: Request, file: UploadFile | None = File(None)) -> JSONResponse:
    result = await save_upload(request.app.state.storage, request.app.state.settings, file)
    return JSONResponse(result, status_code=201)


@router.get("/files/{file_id}", tags=["public"])
async def download_file(file_id: str, request: Request) -> FileResponse:
    path, file_meta = resolve_upload_path(
        request.app.state.storage, request.app.state.settings, file_id
    )
    return FileResponse(
        path,
        filename=file_meta.get("original_name") or file_id,
        media_type=file_meta.get("content_type") or None,
    )


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
