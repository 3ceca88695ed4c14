"""
JSON settings endpoint used by the editor screens.

    GET  /api/editor/settings/<section>?journalId=<id>
    POST /api/editor/settings/<section>   {"journalId": <id>, "settings": {...}}

Both return {"ok": true, "settings": {...}} or {"ok": false, "message": "..."}.
"""
from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, g, jsonify, request

from app.ojsadmin.db import db_session
from app.ojsadmin.models import User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.journals.settings import (
    ensure_section_defaults,
    load_section_settings,
    save_section_settings,
    validate_section_name,
    validate_settings_payload,
)
from app.ojsadmin.rbac import user_has_journal_permission, user_role_assignments

bp = Blueprint("settings_api", __name__)
logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def _fail(status: int, message: str):
    return jsonify({"ok": False, "message": message}), status


# Largest id an INTEGER/BIGINT primary key column can hold.
MAX_JOURNAL_ID = 2**63 - 1


def _coerce_journal_id(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and raw.is_integer():
        value = int(raw)
    elif isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        return None
    if not 1 <= value <= MAX_JOURNAL_ID:
        return None
    return value


def _require_user() -> User:
    user = getattr(g, "current_user", None)
    if not user or not user.is_active:
        raise ApiError(401, "Unauthorized")
    return user


def _default_journal_id(user: User) -> int | None:
    """First journal the user holds a role in (site-wide assignments have no journal)."""
    for ra in user_role_assignments(user):
        if ra.context_id is not None:
            return ra.context_id
    return None


def _check_access(s, user: User, journal_id: int, permission_key: str) -> Journal:
    if not user_has_journal_permission(user, journal_id, permission_key):
        g.missing_permission = permission_key
        raise ApiError(403, "Forbidden")
    journal = s.get(Journal, journal_id)
    if journal is None:
        raise ApiError(404, "Journal not found")
    return journal


@bp.get("/api/editor/settings/<section>")
def settings_get(section: str):
    s = db_session()
    try:
        user = _require_user()
        try:
            section = validate_section_name(section)
        except ValueError as e:
            raise ApiError(400, str(e)) from e

        raw_id = request.args.get("journalId")
        if raw_id is None or raw_id.strip() == "":
            journal_id = _default_journal_id(user)
            if journal_id is None:
                raise ApiError(400, "Journal ID is required")
        else:
            journal_id = _coerce_journal_id(raw_id)
            if journal_id is None:
                raise ApiError(400, "Journal ID must be an integer")

        _check_access(s, user, journal_id, "journal_settings.view")
        if ensure_section_defaults(s, journal_id, section):
            s.commit()
        settings = load_section_settings(s, journal_id, section)
        return jsonify({"ok": True, "settings": settings})
    except ApiError as e:
        s.rollback()
        return _fail(e.status, e.message)
    except Exception as e:
        s.rollback()
        logger.exception("Settings GET failed section=%s request_id=%s", section, getattr(g, "request_id", None))
        return _fail(500, str(e) or "Internal error")


@bp.post("/api/editor/settings/<section>")
def settings_post(section: str):
    s = db_session()
    try:
        user = _require_user()
        try:
            section = validate_section_name(section)
        except ValueError as e:
            raise ApiError(400, str(e)) from e

        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ApiError(400, "Request body must be a JSON object")
        if body.get("journalId") is None:
            raise ApiError(400, "Journal ID is required")
        journal_id = _coerce_journal_id(body.get("journalId"))
        if journal_id is None:
            raise ApiError(400, "Journal ID must be an integer")

        settings = body.get("settings")
        errors = validate_settings_payload(settings)
        if errors:
            raise ApiError(400, errors[0])

        _check_access(s, user, journal_id, "journal_settings.edit")
        save_section_settings(s, journal_id, section, settings, actor=user)
        s.commit()
        return jsonify({"ok": True, "settings": load_section_settings(s, journal_id, section)})
    except ApiError as e:
        s.rollback()
        return _fail(e.status, e.message)
    except Exception as e:
        s.rollback()
        logger.exception("Settings POST failed section=%s request_id=%s", section, getattr(g, "request_id", None))
        return _fail(500, str(e) or "Internal error")
