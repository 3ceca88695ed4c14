import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.ojsadmin.models import AuditEvent, User


def _request_origin() -> tuple[str | None, str | None]:
    """(request_id, client_ip) of the current request; both None in scripts."""
    if not has_request_context():
        return None, None
    return getattr(g, "request_id", None), request.remote_addr


def _encode_metadata(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    # settings values may carry dates or other non-JSON types
    return json.dumps(metadata, sort_keys=True, default=str)


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add one audit row to the session. The caller owns the commit, so the event
    lands in the same transaction as the change it describes.
    """
    current_rid, client_ip = _request_origin()
    event = AuditEvent(
        request_id=request_id or current_rid,
        client_ip=client_ip,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=_encode_metadata(metadata),
    )
    s.add(event)
    return event
