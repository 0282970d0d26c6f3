from __future__ import annotations

from flask import Blueprint, Response, abort, jsonify, request
from pydantic import BaseModel, ValidationError, field_validator

from capacita.core.db import get_db
from capacita.models.configuracoes_notificacao import (
    NotificationSettingsIn,
    NotificationSettingsOut,
)
from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum
from capacita.repositories.EmpresasRepository import EmpresasRepository
from capacita.routes import format_validation_error, validate_payload
from capacita.services.cnpj import CnpjLookupError, lookup_cnpj
from capacita.services.security import (
    FORBID,
    enforce_csrf,
    get_current_user,
    require_roles,
)
from capacita.services.theme import (
    COLOR_PALETTES,
    ThemeApplier,
    company_palette,
    hsl_to_hex,
    theme_for_user,
)


bp = Blueprint("empresas", __name__, url_prefix="/empresas")


class ThemeIn(BaseModel):
    tema_cor: str | None = None

    @field_validator("tema_cor")
    @classmethod
    def known_palette(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().lower()
        if value not in COLOR_PALETTES:
            raise ValueError("Paleta de cores desconhecida.")
        return value


def _ensure_company_access(user: Perfis, empresa_id: str) -> None:
    if user.is_master:
        return
    if user.empresa_id != empresa_id:
        raise FORBID


@bp.get("")
def list_companies():
    empresas = EmpresasRepository(get_db()).list_active()
    return jsonify(
        {
            "empresas": [
                {"id": e.id, "nome": e.nome_fantasia or e.nome} for e in empresas
            ]
        }
    )


@bp.get("/paletas")
def list_palettes():
    return jsonify(
        {
            "paletas": [
                {
                    "id": p.id,
                    "nome": p.name,
                    "primary": p.primary,
                    "hex": hsl_to_hex(p.primary),
                }
                for p in COLOR_PALETTES.values()
            ]
        }
    )


@bp.get("/tema")
def current_theme():
    user = get_current_user()
    applier = theme_for_user(get_db(), user, request.args.get("empresa"))
    return jsonify(
        {
            "paleta": (applier.palette.id if applier.palette else "purple"),
            "variaveis": applier.root.properties,
        }
    )


@bp.get("/tema.css")
def current_theme_css():
    user = get_current_user()
    applier = theme_for_user(get_db(), user, request.args.get("empresa"))
    return Response(applier.root.to_css(), mimetype="text/css")


@bp.get("/<string:empresa_id>/tema")
def company_theme(empresa_id: str):
    user = get_current_user()
    _ensure_company_access(user, empresa_id)
    applier = ThemeApplier()
    applier.apply(company_palette(get_db(), empresa_id))
    return jsonify(
        {
            "paleta": (applier.palette.id if applier.palette else "purple"),
            "variaveis": applier.root.properties,
        }
    )


@bp.put("/<string:empresa_id>/tema")
def set_company_theme(empresa_id: str):
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    _ensure_company_access(user, empresa_id)
    try:
        payload: ThemeIn = validate_payload(ThemeIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    try:
        empresa = EmpresasRepository(get_db()).set_theme(empresa_id, payload.tema_cor)
    except LookupError:
        abort(404, description="Empresa não encontrada")
    return jsonify({"empresa_id": empresa.id, "tema_cor": empresa.tema_cor})


@bp.get("/<string:empresa_id>/notificacoes")
def get_notification_settings(empresa_id: str):
    user = require_roles(*RolesEnum.managers())
    _ensure_company_access(user, empresa_id)
    row = EmpresasRepository(get_db()).get_notification_settings(empresa_id)
    out = NotificationSettingsOut.model_validate(row) if row else NotificationSettingsOut()
    return jsonify({"configuracoes": out.model_dump()})


@bp.patch("/<string:empresa_id>/notificacoes")
def update_notification_settings(empresa_id: str):
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    _ensure_company_access(user, empresa_id)
    try:
        payload: NotificationSettingsIn = validate_payload(NotificationSettingsIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    repo = EmpresasRepository(get_db())
    if repo.get(empresa_id) is None:
        abort(404, description="Empresa não encontrada")
    row = repo.update_notification_settings(empresa_id, payload)
    return jsonify(
        {"configuracoes": NotificationSettingsOut.model_validate(row).model_dump()}
    )


@bp.get("/cnpj/<string:cnpj>")
def consult_cnpj(cnpj: str):
    require_roles(*RolesEnum.managers())
    try:
        data = lookup_cnpj(cnpj)
    except CnpjLookupError as exc:
        return jsonify({"detail": exc.message}), exc.status_code
    data["cadastrada"] = EmpresasRepository(get_db()).get_by_cnpj(cnpj) is not None
    return jsonify({"empresa": data})
