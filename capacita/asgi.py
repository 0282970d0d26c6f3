"""ASGI wrapper so the Flask app can run under Uvicorn."""

from uvicorn.middleware.wsgi import WSGIMiddleware

from capacita.main import create_app


def build_app():
    return WSGIMiddleware(create_app())


app = build_app()
