from __future__ import annotations

import logging
from typing import Any

from formcraft.errors import Forbidden, NotFound, SubmissionClosed
from formcraft.utils import new_share_token

logger = logging.getLogger(__name__)

DRAFT = "draft"
PUBLISHED = "published"
PUBLISH_STATUSES = {DRAFT, PUBLISHED}


def can_submit(form: dict[str, Any]) -> bool:
    return form.get("publish_status") == PUBLISHED


def can_access_private(form: dict[str, Any], user_id: str | None) -> bool:
    return bool(user_id) and form.get("user_id") == user_id


def require_owner(form: dict[str, Any] | None, user_id: str | None) -> dict[str, Any]:
    if form is None:
        raise NotFound("Form not found")
    if not can_access_private(form, user_id):
        raise Forbidden("You do not have permission to access this form")
    return form


def require_submittable(form: dict[str, Any] | None) -> dict[str, Any]:
    if form is None:
        raise NotFound("Form not found")
    if not can_submit(form):
        raise SubmissionClosed("This form is not accepting responses")
    return form


def assign_shareable_url(form: dict[str, Any]) -> str:
    """Return the form's share token, minting one only if it never had one."""
    token = form.get("shareable_url")
    if not token:
        token = new_share_token()
        logger.info("Assigned share token for form %s", form.get("id"))
    return token


def publish_updates(form: dict[str, Any]) -> dict[str, Any]:
    return {"publish_status": PUBLISHED, "shareable_url": assign_shareable_url(form)}


def unpublish_updates() -> dict[str, Any]:
    # the share token is kept so republishing reuses it
    return {"publish_status": DRAFT}
