from __future__ import annotations

from flask import Blueprint, jsonify, request

from capacita.core.db import get_db
from capacita.core.settings import settings
from capacita.models.perfis import PerfilOut
from capacita.services.security import get_current_user
from capacita.services.theme import theme_for_user


bp = Blueprint("me", __name__)


@bp.get("/me")
def me():
    user = get_current_user()
    applier = theme_for_user(get_db(), user, request.args.get("empresa"))
    response = jsonify(
        {
            "user": PerfilOut.from_orm_user(user).model_dump(mode="json"),
            "tema": applier.root.properties,
        }
    )
    csrf_token = request.cookies.get(settings.CSRF_COOKIE_NAME)
    if csrf_token:
        response.headers["X-CSRF-Token"] = csrf_token
    return response
