from __future__ import annotations

from flask import Blueprint, abort, jsonify
from pydantic import ValidationError

from capacita.core.db import get_db
from capacita.models.perfis import LoginIn, PerfilOut, RegisterIn
from capacita.repositories.EmpresasRepository import EmpresasRepository
from capacita.repositories.PerfisRepository import PerfisRepository
from capacita.routes import (
    format_validation_error,
    rate_limited_response,
    validate_payload,
)
from capacita.services.security import (
    clear_csrf_cookie,
    clear_session_cookie,
    generate_csrf_token,
    hash_password,
    set_csrf_cookie,
    set_session_cookie,
    sign_session,
    verify_password,
)


bp = Blueprint("auth", __name__, url_prefix="/auth")


def _session_response(user, remember: bool, status: int = 200):
    response = jsonify({"user": PerfilOut.from_orm_user(user).model_dump(mode="json")})
    response.status_code = status
    set_session_cookie(response, sign_session(user), remember=remember)
    set_csrf_cookie(response, generate_csrf_token(user.id), remember=remember)
    return response


@bp.post("/register")
def register():
    try:
        payload: RegisterIn = validate_payload(RegisterIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    limited = rate_limited_response("auth", "register", identifier=payload.email)
    if limited:
        return limited

    db = get_db()
    repo = PerfisRepository(db)
    if repo.exists_email(payload.email):
        abort(409, description="Dados já cadastrados")

    if payload.empresa_id:
        empresa = EmpresasRepository(db).get(payload.empresa_id)
        if not empresa or not empresa.ativo:
            abort(400, description="Empresa inválida")

    user = repo.create(
        email=payload.email,
        password_hash=hash_password(payload.password),
        nome=payload.nome,
        empresa_id=payload.empresa_id,
        cargo=payload.cargo,
    )
    return _session_response(user, payload.remember, status=201)


@bp.post("/login")
def login():
    try:
        payload: LoginIn = validate_payload(LoginIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    limited = rate_limited_response("auth", "login", identifier=payload.email)
    if limited:
        return limited

    user = PerfisRepository(get_db()).get_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        abort(401, description="Credenciais inválidas")
    if not user.ativo:
        abort(403, description="Usuário inativo")

    return _session_response(user, payload.remember)


@bp.post("/logout")
def logout():
    response = jsonify({"ok": True})
    clear_session_cookie(response)
    clear_csrf_cookie(response)
    return response
