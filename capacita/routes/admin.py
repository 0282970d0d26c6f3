from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from flask import Blueprint, Response, abort, jsonify, request
from pydantic import BaseModel, Field, ValidationError, field_validator

from capacita.core.db import get_db
from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum
from capacita.models.treinamentos import StatusTreinamento
from capacita.repositories.TreinamentosRepository import TreinamentosRepository
from capacita.routes import format_validation_error, validate_payload
from capacita.routes.treinamentos import course_dict
from capacita.services.export import ExportColumn, export_csv, export_pdf
from capacita.services.markdown import markdown_to_html
from capacita.services.notifications import notify_new_course
from capacita.services.sanitizer import sanitize_basic_html, sanitize_html
from capacita.services.security import FORBID, enforce_csrf, require_roles
from capacita.services.theme import ALL_COMPANIES


bp = Blueprint("admin", __name__, url_prefix="/admin")

REPORT_COLUMNS = (
    ExportColumn("Treinamento", "treinamento"),
    ExportColumn("Categoria", "categoria"),
    ExportColumn("Colaborador", "usuario"),
    ExportColumn("E-mail", "email"),
    ExportColumn("Progresso (%)", "percentual"),
    ExportColumn("Concluído", "concluido"),
    ExportColumn("Tempo (min)", "tempo_minutos"),
    ExportColumn("Início", "data_inicio"),
    ExportColumn("Conclusão", "data_conclusao"),
)


class AdminTreinamentoIn(BaseModel):
    titulo: str = Field(..., min_length=1, max_length=255)
    descricao: Optional[str] = None
    categoria: Optional[str] = Field(default=None, max_length=64)
    duracao_minutos: Optional[int] = Field(default=None, ge=0)
    nivel: Optional[str] = Field(default=None, max_length=32)
    thumbnail_url: Optional[str] = None
    conteudo_html: Optional[str] = None
    status: StatusTreinamento = StatusTreinamento.Rascunho
    obrigatorio: bool = False
    data_limite: Optional[date] = None
    instrutor_id: Optional[str] = None
    empresa_id: Optional[str] = None

    @field_validator("titulo")
    @classmethod
    def strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Informe o título do treinamento.")
        return cleaned


class AdminTreinamentoUpdateIn(BaseModel):
    titulo: Optional[str] = Field(default=None, min_length=1, max_length=255)
    descricao: Optional[str] = None
    categoria: Optional[str] = Field(default=None, max_length=64)
    duracao_minutos: Optional[int] = Field(default=None, ge=0)
    nivel: Optional[str] = Field(default=None, max_length=32)
    thumbnail_url: Optional[str] = None
    conteudo_html: Optional[str] = None
    status: Optional[StatusTreinamento] = None
    obrigatorio: Optional[bool] = None
    data_limite: Optional[date] = None
    instrutor_id: Optional[str] = None


class PublishIn(BaseModel):
    publicado: bool


class MarkdownIn(BaseModel):
    texto: str = ""


def _target_company(user: Perfis, requested: Optional[str]) -> Optional[str]:
    """Masters act on any company (or all); admins only on their own."""

    if user.is_master:
        if requested and requested != ALL_COMPANIES:
            return requested
        return None
    if requested and requested not in (ALL_COMPANIES, user.empresa_id):
        raise FORBID
    return user.empresa_id


def _managed_course(user: Perfis, treinamento_id: str):
    course = TreinamentosRepository(get_db()).get(treinamento_id)
    if not course:
        abort(404, description="Treinamento não encontrado")
    if not user.is_master and course.empresa_id != user.empresa_id:
        raise FORBID
    return course


def _clean_fields(data: dict) -> dict:
    if data.get("status") is not None:
        data["status"] = StatusTreinamento(data["status"]).value
    if data.get("descricao") is not None:
        data["descricao"] = sanitize_basic_html(data["descricao"])
    if data.get("conteudo_html") is not None:
        data["conteudo_html"] = sanitize_html(data["conteudo_html"])
    return data


@bp.get("/treinamentos")
def list_admin_courses():
    user = require_roles(*RolesEnum.managers())
    empresa_id = _target_company(user, request.args.get("empresa"))
    courses = TreinamentosRepository(get_db()).list_admin(empresa_id)
    return jsonify({"treinamentos": [course_dict(c) for c in courses]})


@bp.post("/treinamentos")
def create_course():
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    try:
        payload: AdminTreinamentoIn = validate_payload(AdminTreinamentoIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    empresa_id = _target_company(user, payload.empresa_id)
    if empresa_id is None and not user.is_master:
        abort(400, description="Usuário sem empresa vinculada")

    fields = _clean_fields(payload.model_dump(exclude={"empresa_id"}))
    course = TreinamentosRepository(get_db()).create(empresa_id=empresa_id, **fields)
    return jsonify({"treinamento": course_dict(course, with_content=True)}), 201


@bp.patch("/treinamentos/<string:treinamento_id>")
def update_course(treinamento_id: str):
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    try:
        payload: AdminTreinamentoUpdateIn = validate_payload(AdminTreinamentoUpdateIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    _managed_course(user, treinamento_id)
    fields = _clean_fields(payload.model_dump(exclude_unset=True))
    course = TreinamentosRepository(get_db()).update(treinamento_id, **fields)
    return jsonify({"treinamento": course_dict(course, with_content=True)})


@bp.post("/treinamentos/<string:treinamento_id>/publicar")
def publish_course(treinamento_id: str):
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    try:
        payload: PublishIn = validate_payload(PublishIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    db = get_db()
    before = _managed_course(user, treinamento_id)
    was_published = before.publicado
    course = TreinamentosRepository(db).set_published(treinamento_id, payload.publicado)
    notified = 0
    if course.publicado and not was_published:
        notified = notify_new_course(db, course)
    return jsonify({"treinamento": course_dict(course), "notificados": notified})


@bp.delete("/treinamentos/<string:treinamento_id>")
def delete_course(treinamento_id: str):
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    _managed_course(user, treinamento_id)
    course = TreinamentosRepository(get_db()).soft_delete(treinamento_id)
    return jsonify({"treinamento": course_dict(course)})


def _report(user: Perfis):
    empresa_id = _target_company(user, request.args.get("empresa"))
    rows = TreinamentosRepository(get_db()).report_rows(empresa_id)
    return rows


@bp.get("/relatorios/progresso")
def progress_report():
    user = require_roles(*RolesEnum.managers())
    return jsonify({"linhas": _report(user)})


@bp.get("/relatorios/progresso.csv")
def progress_report_csv():
    user = require_roles(*RolesEnum.managers())
    content = export_csv("Relatório de Progresso", REPORT_COLUMNS, _report(user))
    stamp = datetime.now().strftime("%Y-%m-%d")
    return Response(
        content,
        mimetype="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="relatorio-progresso-{stamp}.csv"'
        },
    )


@bp.get("/relatorios/progresso.pdf")
def progress_report_pdf():
    user = require_roles(*RolesEnum.managers())
    content = export_pdf(
        "Relatório de Progresso",
        REPORT_COLUMNS,
        _report(user),
        subtitle=request.args.get("subtitulo"),
    )
    stamp = datetime.now().strftime("%Y-%m-%d")
    return Response(
        content,
        mimetype="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="relatorio-progresso-{stamp}.pdf"'
        },
    )


@bp.post("/markdown/preview")
def markdown_preview():
    require_roles(*RolesEnum.managers())
    try:
        payload: MarkdownIn = validate_payload(MarkdownIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422
    return jsonify({"html": markdown_to_html(payload.texto)})
