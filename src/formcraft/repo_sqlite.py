from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from formcraft.errors import Conflict
from formcraft.models import Base, FileModel, FormModel, ResponseModel, UserModel
from formcraft.utils import dumps_json, loads_json


class SQLiteUserRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(UserModel, user_id)
            return self._to_dict(row) if row else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.query(UserModel).filter(UserModel.email == email).first()
            return self._to_dict(row) if row else None

    def create_user(self, user: dict[str, Any]) -> None:
        with self._Session() as session:
            session.add(
                UserModel(
                    id=user["id"],
                    email=user["email"],
                    name=user["name"],
                    password_hash=user["password_hash"],
                    created_at=user["created_at"],
                )
            )
            session.commit()

    @staticmethod
    def _to_dict(row: UserModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "email": row.email,
            "name": row.name or "",
            "password_hash": row.password_hash,
            "created_at": row.created_at,
        }


class SQLiteFormRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_forms(self, user_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(FormModel)
                .filter(FormModel.user_id == user_id)
                .order_by(FormModel.created_at.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            return self._to_dict(row) if row else None

    def get_form_by_share_token(self, token: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = (
                session.query(FormModel)
                .filter(FormModel.shareable_url == token)
                .first()
            )
            return self._to_dict(row) if row else None

    def create_form(self, form: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FormModel(
                id=form["id"],
                user_id=form["user_id"],
                title=form["title"],
                description=form.get("description", ""),
                purpose=form.get("purpose", ""),
                fields_json=dumps_json(form.get("fields", [])),
                publish_status=form.get("publish_status", "draft"),
                shareable_url=form.get("shareable_url") or None,
                prevent_duplicates=int(bool(form.get("prevent_duplicates"))),
                created_at=form["created_at"],
                updated_at=form["updated_at"],
            )
            session.add(row)
            self._commit(session)

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            for key, value in updates.items():
                if key == "fields":
                    row.fields_json = dumps_json(value)
                elif key == "prevent_duplicates":
                    row.prevent_duplicates = int(bool(value))
                elif key == "shareable_url":
                    row.shareable_url = value or None
                else:
                    setattr(row, key, value)
            self._commit(session)
            session.refresh(row)
            return self._to_dict(row)

    def delete_form(self, form_id: str) -> None:
        with self._Session() as session:
            row = session.get(FormModel, form_id)
            if row:
                session.delete(row)
                session.commit()

    @staticmethod
    def _commit(session: Any) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise Conflict("Shareable URL is already in use") from exc

    @staticmethod
    def _to_dict(row: FormModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "user_id": row.user_id,
            "title": row.title or "",
            "description": row.description or "",
            "purpose": row.purpose or "",
            "fields": loads_json(row.fields_json) or [],
            "publish_status": row.publish_status or "draft",
            "shareable_url": row.shareable_url,
            "prevent_duplicates": bool(row.prevent_duplicates),
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }


class SQLiteResponseRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._Session() as session:
            rows = (
                session.query(ResponseModel)
                .filter(ResponseModel.form_id == form_id)
                .order_by(ResponseModel.submitted_at.desc())
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_response(self, response_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(ResponseModel, response_id)
            return self._to_dict(row) if row else None

    def create_response(self, response: dict[str, Any]) -> None:
        with self._Session() as session:
            row = ResponseModel(
                id=response["id"],
                form_id=response["form_id"],
                data_json=dumps_json(response["response_data"]),
                submitted_at=response["submitted_at"],
            )
            session.add(row)
            session.commit()

    def delete_responses_for_form(self, form_id: str) -> None:
        with self._Session() as session:
            session.query(ResponseModel).filter(ResponseModel.form_id == form_id).delete()
            session.commit()

    @staticmethod
    def _to_dict(row: ResponseModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "response_data": loads_json(row.data_json) or {},
            "submitted_at": row.submitted_at,
        }


class SQLiteFileRepo:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    def create_file(self, file_meta: dict[str, Any]) -> None:
        with self._Session() as session:
            row = FileModel(
                id=file_meta["id"],
                original_name=file_meta["original_name"],
                stored_path=file_meta["stored_path"],
                content_type=file_meta["content_type"],
                size=file_meta["size"],
                created_at=file_meta["created_at"],
            )
            session.add(row)
            session.commit()

    def get_file(self, file_id: str) -> dict[str, Any] | None:
        with self._Session() as session:
            row = session.get(FileModel, file_id)
            if not row:
                return None
            return {
                "id": row.id,
                "original_name": row.original_name,
                "stored_path": row.stored_path,
                "content_type": row.content_type,
                "size": row.size,
                "created_at": row.created_at,
            }


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(f"sqlite:///{db_path}", future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.users = SQLiteUserRepo(self._Session)
        self.forms = SQLiteFormRepo(self._Session)
        self.responses = SQLiteResponseRepo(self._Session)
        self.files = SQLiteFileRepo(self._Session)
