import logging

from flask import Flask, jsonify, request
from flask_cors import CORS as FlaskCORS
from werkzeug.exceptions import HTTPException

from capacita.core.db import close_db, ensure_schema
from capacita.core.settings import settings
from capacita.routes.admin import bp as admin_bp
from capacita.routes.auth import bp as auth_bp
from capacita.routes.certificados import bp as certificados_bp
from capacita.routes.empresas import bp as empresas_bp
from capacita.routes.estudo import bp as estudo_bp
from capacita.routes.ia import bp as ia_bp
from capacita.routes.me import bp as me_bp
from capacita.routes.pagamentos import bp as pagamentos_bp
from capacita.routes.treinamentos import bp as treinamentos_bp


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> Flask:
    configure_logging()
    app = Flask(__name__)

    ensure_schema()

    allowed_origins = settings.cors_allowed_origins_list() or [settings.API_ORIGIN]

    FlaskCORS(
        app,
        origins=allowed_origins,
        supports_credentials=True,
        expose_headers=settings.cors_expose_headers_list(),
        allow_headers=settings.cors_allow_headers_list(),
    )

    if settings.is_production:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_SAMESITE="None",
        )

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in settings.cors_origin_set:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = (
                settings.cors_allow_headers_string()
            )
            response.headers["Access-Control-Allow-Methods"] = (
                "GET,POST,PUT,DELETE,OPTIONS,PATCH"
            )
        return response

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        response = jsonify({"detail": exc.description})
        response.status_code = exc.code or 500
        return response

    app.register_blueprint(auth_bp)
    app.register_blueprint(me_bp)
    app.register_blueprint(treinamentos_bp)
    app.register_blueprint(estudo_bp)
    app.register_blueprint(empresas_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(certificados_bp)
    app.register_blueprint(pagamentos_bp)
    app.register_blueprint(ia_bp)

    app.teardown_appcontext(close_db)

    @app.route("/healthz", methods=["GET", "HEAD"])
    def healthz():
        return ("", 200)

    return app


app = create_app()
