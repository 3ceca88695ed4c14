import logging
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request, session
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect

from app.ojsadmin.config import load_config
from app.ojsadmin.db import init_db, teardown_db_session
# must precede the blueprint imports (models.py loads the module models at its bottom)
from app.ojsadmin import models  # noqa: F401
from app.ojsadmin.routes import bp as routes_bp
from app.ojsadmin.auth import bp as auth_bp, load_current_user
from app.ojsadmin.admin import bp as admin_bp
from app.ojsadmin.modules.journals.admin import bp as journals_bp
from app.ojsadmin.modules.journals.api import bp as settings_api_bp
from app.ojsadmin.modules.journals.public import bp as journal_public_bp
from app.ojsadmin.modules.site_settings.admin import bp as site_settings_bp
from app.ojsadmin.modules.plugins.admin import bp as plugins_bp
from app.ojsadmin.modules.users.admin import bp as users_bp
from app.ojsadmin.modules.submissions.admin import bp as submissions_bp

logger = logging.getLogger(__name__)

_SKIP_PREFIXES = ("/static/", "/health", "/healthz")

# Tables the code expects; a missing one means `alembic upgrade head` was not run.
_REQUIRED_TABLES = (
    "users",
    "roles",
    "permissions",
    "user_journal_roles",
    "journals",
    "journal_settings",
    "site_settings",
    "issues",
    "submissions",
    "audit_events",
)


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.ojsadmin.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.ojsadmin.rbac import user_has_journal_permission, user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        def has_journal_perm(journal_id: int, key: str) -> bool:
            return user_has_journal_permission(getattr(g, "current_user", None), journal_id, key)

        return {"has_perm": has_perm, "has_journal_perm": has_journal_perm}

    @app.context_processor
    def _inject_site() -> dict:
        from app.ojsadmin.constants import APP_NAME, DEFAULT_LOCALE
        from app.ojsadmin.db import db_session
        from app.ojsadmin.modules.site_settings.service import enabled_locales, load_site_section

        try:
            s = db_session()
            setup = load_site_section(s, "setup")
            locales = enabled_locales(s)
            appearance = load_site_section(s, "appearance")
            theme = load_site_section(s, "theme")
        except Exception as e:
            # error pages must still render when the DB is down
            app.logger.warning("Site settings unavailable for template context: %s", e)
            return {"site_name": APP_NAME, "site_locales": {}, "current_locale": DEFAULT_LOCALE, "site_appearance": {}, "site_theme": {}}
        current = session.get("locale")
        if current not in locales:
            current = next(iter(locales), DEFAULT_LOCALE)
        return {
            "site_name": setup.get("site_name") or APP_NAME,
            "site_locales": locales,
            "current_locale": current,
            "site_appearance": appearance,
            "site_theme": theme,
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_SKIP_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # login/logout pass through
            if (request.endpoint or "").startswith("auth."):
                return None
            # anonymous API calls get 401 before any CSRF check
            if _wants_json() and not session.get("user_id"):
                return jsonify({"ok": False, "message": "Unauthorized"}), 401
            if not validate_csrf(request):
                if _wants_json():
                    return jsonify({"ok": False, "message": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os

        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(journals_bp, url_prefix="/admin")
    app.register_blueprint(plugins_bp, url_prefix="/admin")
    app.register_blueprint(site_settings_bp, url_prefix="/admin/site-settings")
    app.register_blueprint(submissions_bp, url_prefix="/manager")
    app.register_blueprint(users_bp)
    app.register_blueprint(settings_api_bp)
    app.register_blueprint(journal_public_bp)

    def _load_user_wrapper():
        if request.path.startswith(_SKIP_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    app.config.setdefault("_schema_health_ok", True)
    app.config.setdefault("_schema_health_missing", [])

    def _run_schema_health_check() -> None:
        missing: list[str] = []
        try:
            insp = sa_inspect(app.extensions["sqlalchemy_engine"])
            missing = [t for t in _REQUIRED_TABLES if not insp.has_table(t)]
        except Exception as e:
            app.logger.exception("Schema health check failed: %s", e)
        if missing:
            app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))
        app.config["_schema_health_missing"] = missing
        app.config["_schema_health_ok"] = not missing

    _run_schema_health_check()

    @app.before_request
    def _schema_health_guardrail():
        if app.config.get("_schema_health_ok"):
            return None
        # tables may have been created after startup (tests, first deploy)
        _run_schema_health_check()
        if app.config.get("_schema_health_ok"):
            return None
        if request.path.startswith(("/admin", "/manager")):
            return render_template("errors/schema_out_of_date.html", missing=app.config["_schema_health_missing"]), 500
        return None

    @app.errorhandler(400)
    def _err_400(e):
        message = getattr(e, "description", None) or "Bad request."
        if _wants_json():
            return jsonify({"ok": False, "message": message}), 400
        return render_template("errors/400.html", message=message), 400

    @app.errorhandler(403)
    def _err_403(e):
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"ok": False, "message": "Forbidden"}), 403
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(404)
    def _err_404(e):
        if _wants_json():
            return jsonify({"ok": False, "message": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _err_413(e):
        from flask import flash, redirect, url_for

        if _wants_json():
            return jsonify({"ok": False, "message": "Request too large."}), 413
        flash("File too large. Maximum size is 10MB.", "danger")
        referrer = request.referrer
        if referrer and referrer.startswith(request.host_url):
            return redirect(referrer), 302
        return redirect(url_for("routes.index")), 302

    @app.errorhandler(500)
    def _err_500(e):
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"ok": False, "message": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    logger.info("create_app() complete; app ready to serve")
    return app
