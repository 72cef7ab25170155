from __future__ import annotations

from typing import Any, Protocol


class UserRepository(Protocol):
    def get_user(self, user_id: str) -> dict[str, Any] | None: ...

    def get_user_by_email(self, email: str) -> dict[str, Any] | None: ...

    def create_user(self, user: dict[str, Any]) -> None: ...


class FormRepository(Protocol):
    def list_forms(self, user_id: str) -> list[dict[str, Any]]: ...

    def get_form(self, form_id: str) -> dict[str, Any] | None: ...

    def get_form_by_share_token(self, token: str) -> dict[str, Any] | None: ...

    def create_form(self, form: dict[str, Any]) -> None: ...

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_form(self, form_id: str) -> None: ...


class ResponseRepository(Protocol):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]: ...

    def get_response(self, response_id: str) -> dict[str, Any] | None: ...

    def create_response(self, response: dict[str, Any]) -> None: ...

    def delete_responses_for_form(self, form_id: str) -> None: ...


class FileRepository(Protocol):
    def create_file(self, file_meta: dict[str, Any]) -> None: ...

    def get_file(self, file_id: str) -> dict[str, Any] | None: ...


class Storage(Protocol):
    users: UserRepository
    forms: FormRepository
    responses: ResponseRepository
    files: FileRepository
