from __future__ import annotations

import pytest

from formcraft.errors import Conflict
from formcraft.repo_json import JSONStorage
from formcraft.repo_sqlite import SQLiteStorage
from formcraft.utils import now_utc


@pytest.fixture(params=["sqlite", "json"])
def storage(request, tmp_path):
    if request.param == "json":
        return JSONStorage(tmp_path / "store.json")
    return SQLiteStorage(tmp_path / "app.db")


def _form(form_id: str, token: str | None = None) -> dict:
    now = now_utc()
    return {
        "id": form_id,
        "user_id": "u1",
        "title": form_id,
        "fields": [],
        "publish_status": "draft",
        "shareable_url": token,
        "created_at": now,
        "updated_at": now,
    }


def test_share_tokens_are_unique(storage):
    storage.forms.create_form(_form("a", "tok"))
    with pytest.raises(Conflict):
        storage.forms.create_form(_form("b", "tok"))
    storage.forms.create_form(_form("c"))
    with pytest.raises(Conflict):
        storage.forms.update_form("c", {"shareable_url": "tok"})
    assert storage.forms.get_form("c")["shareable_url"] is None


def test_forms_without_token_do_not_clash(storage):
    storage.forms.create_form(_form("a"))
    storage.forms.create_form(_form("b"))
    assert storage.forms.update_form("a", {"shareable_url": "tok"})["shareable_url"] == "tok"
    assert storage.forms.get_form_by_share_token("tok")["id"] == "a"
