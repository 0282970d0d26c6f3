from __future__ import annotations

from typing import Literal

from flask import Blueprint, jsonify
from pydantic import BaseModel, Field, ValidationError

from capacita.models.roles import RolesEnum
from capacita.routes import format_validation_error, rate_limited_response, validate_payload
from capacita.services.ai_rewrite import RewriteError, rewrite_text
from capacita.services.security import enforce_csrf, require_roles


bp = Blueprint("ia", __name__, url_prefix="/ia")


class RewriteIn(BaseModel):
    text: str = Field(..., min_length=1, max_length=20000)
    provider: Literal["gemini", "chatgpt", "deepseek"] = "gemini"


@bp.post("/reescrever")
def reescrever():
    user = require_roles(*RolesEnum.managers(), RolesEnum.Instrutor.value)
    enforce_csrf()
    try:
        payload: RewriteIn = validate_payload(RewriteIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    limited = rate_limited_response("ai", "rewrite", identifier=user.id)
    if limited:
        return limited

    try:
        rewritten = rewrite_text(payload.text, payload.provider)
    except RewriteError as exc:
        return jsonify({"detail": exc.message}), exc.status_code
    return jsonify({"rewrittenText": rewritten})
