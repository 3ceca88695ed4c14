import mimetypes

from flask import Blueprint, abort, current_app, redirect, render_template, request, send_file, session, url_for

from app.ojsadmin.db import db_session
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.site_settings.service import enabled_locales
from app.ojsadmin.storage import StorageError, storage_from_config

bp = Blueprint("routes", __name__)

# Only uploaded site/issue assets are served publicly.
PUBLIC_ASSET_PREFIXES = ("site/", "journals/")


@bp.get("/")
def index():
    s = db_session()
    journals = s.query(Journal).filter(Journal.enabled.is_(True)).order_by(Journal.title.asc()).all()
    return render_template("public/index.html", journals=journals)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for load balancer probes. No DB access.
    """
    return "ok", 200


@bp.get("/locale/<code>")
def set_locale(code: str):
    s = db_session()
    if code not in enabled_locales(s):
        abort(404)
    session["locale"] = code
    referrer = request.referrer
    if referrer and referrer.startswith(request.host_url):
        return redirect(referrer)
    return redirect(url_for("routes.index"))


@bp.get("/assets/<path:key>")
def asset(key: str):
    if not key.startswith(PUBLIC_ASSET_PREFIXES):
        abort(404)
    storage = storage_from_config(current_app.config)
    try:
        if not storage.exists(key):
            abort(404)
        fobj = storage.open(key)
    except StorageError:
        abort(404)
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return send_file(fobj, mimetype=mimetype, max_age=3600)
