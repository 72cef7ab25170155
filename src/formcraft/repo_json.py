from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from filelock import FileLock
from tinydb import Query, TinyDB

from formcraft.errors import Conflict
from formcraft.utils import now_utc, parse_dt, to_iso

_DATE_KEYS = {"created_at", "updated_at", "submitted_at"}


def _to_record(document: dict[str, Any]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for key, value in document.items():
        if key in _DATE_KEYS and isinstance(value, datetime):
            record[key] = to_iso(value)
        else:
            record[key] = value
    return record


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterable[TinyDB]:
        with self._lock:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()


class JSONUserRepo(JSONRepoBase):
    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().id == user_id)
        return self._from_record(item) if item else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("users").get(Query().email == email)
        return self._from_record(item) if item else None

    def create_user(self, user: dict[str, Any]) -> None:
        with self._db() as db:
            db.table("users").insert(_to_record(user))

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "email": record["email"],
            "name": record.get("name", ""),
            "password_hash": record.get("password_hash", ""),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONFormRepo(JSONRepoBase):
    def list_forms(self, user_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").search(Query().user_id == user_id)
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: x["created_at"], reverse=True)

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return self._from_record(item) if item else None

    def get_form_by_share_token(self, token: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().shareable_url == token)
        return self._from_record(item) if item else None

    def create_form(self, form: dict[str, Any]) -> None:
        record = _to_record(form)
        record.setdefault("created_at", to_iso(now_utc()))
        record.setdefault("updated_at", to_iso(now_utc()))
        with self._db() as db:
            table = db.table("forms")
            self._check_share_token(table, record)
            table.insert(record)

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form_id)
            if not item:
                raise KeyError(form_id)
            item.update(_to_record(updates))
            self._check_share_token(table, item)
            table.update(item, Query().id == form_id)
        return self._from_record(item)

    def delete_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("forms").remove(Query().id == form_id)

    @staticmethod
    def _check_share_token(table: Any, record: dict[str, Any]) -> None:
        # tokens are unique among forms that have one
        token = record.get("shareable_url")
        if not token:
            return
        clash = table.get((Query().shareable_url == token) & (Query().id != record["id"]))
        if clash:
            raise Conflict("Shareable URL is already in use")

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "user_id": record.get("user_id"),
            "title": record.get("title", ""),
            "description": record.get("description", ""),
            "purpose": record.get("purpose", ""),
            "fields": record.get("fields", []),
            "publish_status": record.get("publish_status", "draft"),
            "shareable_url": record.get("shareable_url") or None,
            "prevent_duplicates": bool(record.get("prevent_duplicates")),
            "created_at": parse_dt(record.get("created_at")),
            "updated_at": parse_dt(record.get("updated_at")),
        }


class JSONResponseRepo(JSONRepoBase):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("responses").search(Query().form_id == form_id)
        responses = [self._from_record(item) for item in items]
        return sorted(responses, key=lambda x: x["submitted_at"], reverse=True)

    def get_response(self, response_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("responses").get(Query().id == response_id)
        return self._from_record(item) if item else None

    def create_response(self, response: dict[str, Any]) -> None:
        with self._db() as db:
            db.table("responses").insert(_to_record(response))

    def delete_responses_for_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("responses").remove(Query().form_id == form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "response_data": record.get("response_data", {}),
            "submitted_at": parse_dt(record.get("submitted_at")),
        }


class JSONFileRepo(JSONRepoBase):
    def create_file(self, file_meta: dict[str, Any]) -> None:
        with self._db() as db:
            db.table("files").insert(_to_record(file_meta))

    def get_file(self, file_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("files").get(Query().id == file_id)
        return self._from_record(item) if item else None

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "original_name": record.get("original_name", ""),
            "stored_path": record.get("stored_path", ""),
            "content_type": record.get("content_type", ""),
            "size": record.get("size", 0),
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.users = JSONUserRepo(path, self._lock)
        self.forms = JSONFormRepo(path, self._lock)
        self.responses = JSONResponseRepo(path, self._lock)
        self.files = JSONFileRepo(path, self._lock)
