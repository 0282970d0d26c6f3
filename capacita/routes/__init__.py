from __future__ import annotations

import json
import math

from flask import Response, jsonify, request
from pydantic import ValidationError

from capacita.services.rate_limiter import check_rate_limit


def format_validation_error(exc: ValidationError) -> list[dict]:
    """Return JSON-serializable validation errors."""
    return json.loads(exc.json(include_url=False))


def validate_payload(model_cls):
    data = request.get_json(silent=True) or {}
    return model_cls.model_validate(data)


def client_identifier() -> str:
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    ip = forwarded_for.split(",", 1)[0].strip() if forwarded_for else ""
    if not ip:
        ip = request.remote_addr or "unknown"
    return ip


def rate_limited_response(
    scope: str, action: str, *, identifier: str | None = None
) -> Response | None:
    parts = [action]
    if identifier:
        parts.append(identifier.lower())
    parts.append(client_identifier())
    retry_after = check_rate_limit(scope, ":".join(parts))
    if retry_after is None:
        return None
    wait_seconds = max(1, math.ceil(retry_after))
    response = jsonify(
        {"detail": "Muitas tentativas. Aguarde antes de tentar novamente."}
    )
    response.status_code = 429
    response.headers["Retry-After"] = str(wait_seconds)
    return response
