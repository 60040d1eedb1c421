from flask import Flask, redirect, request
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from dotenv import load_dotenv
from sqlalchemy.orm import sessionmaker

db = SQLAlchemy()
migrate = Migrate()

HTTPS_EXEMPT_PATHS = {"/healthz"}


def build_visitor_log_service(app: Flask):
    from personal_site.visitor_log import VisitorLogService, VisitorLogStore

    with app.app_context():
        session_factory = sessionmaker(bind=db.engine, expire_on_commit=False)
    return VisitorLogService(
        VisitorLogStore(session_factory),
        tz_name=app.config["SITE_TIMEZONE"],
        name_max_length=app.config["VISITOR_NAME_MAX_LENGTH"],
    )


def create_app(config_overrides=None, visitor_log=None, proxy_transport=None) -> Flask:
    load_dotenv()

    app = Flask(__name__)
    app.config.from_object("personal_site.config.Config")
    if config_overrides:
        app.config.update(config_overrides)

    db.init_app(app)
    migrate.init_app(app, db)

    # Ensure model metadata is registered for migrations.
    from personal_site import models  # noqa: F401

    app.extensions["visitor_log"] = visitor_log or build_visitor_log_service(app)

    from personal_site import pages, proxy
    from personal_site.routes import bp

    pages.init_app(app)
    app.register_blueprint(bp)
    proxy.init_app(app, transport=proxy_transport)

    @app.before_request
    def enforce_https():
        if not app.config.get("FORCE_HTTPS") or request.path in HTTPS_EXEMPT_PATHS:
            return None
        if request.headers.get("X-Forwarded-Proto", "").lower() == "http":
            return redirect(request.url.replace("http://", "https://", 1), code=301)
        return None

    @app.after_request
    def apply_security_headers(response):
        if request.blueprint == "proxy":
            return response
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if app.config.get("SESSION_COOKIE_SECURE") or app.config.get("FORCE_HTTPS"):
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response

    return app
