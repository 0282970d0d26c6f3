from __future__ import annotations

import re
from typing import Optional

from flask import Blueprint, Response, abort, jsonify, request
from pydantic import BaseModel, Field, ValidationError

from capacita.core.db import get_db
from capacita.models.progresso_treinamentos import ProgressoTreinamentos
from capacita.models.roles import RolesEnum
from capacita.models.treinamentos import Treinamentos
from capacita.repositories.ProgressoRepository import ProgressoRepository, ProgressWrite
from capacita.repositories.TreinamentosRepository import (
    CatalogItem,
    TreinamentosRepository,
)
from capacita.routes import format_validation_error, validate_payload
from capacita.services.calendar import calendar_links, deadline_event, generate_ics
from capacita.services.certificates import on_course_completed
from capacita.services.notifications import notification_settings
from capacita.services.security import enforce_csrf, get_current_user


bp = Blueprint("treinamentos", __name__, url_prefix="/treinamentos")


class ProgressIn(BaseModel):
    percentual: float = Field(..., ge=0)


def _progress_dict(row: Optional[ProgressoTreinamentos]) -> dict | None:
    if row is None:
        return None
    return {
        "percentual_concluido": float(row.percentual_concluido or 0),
        "concluido": bool(row.concluido),
        "data_inicio": row.data_inicio.isoformat() if row.data_inicio else None,
        "data_conclusao": row.data_conclusao.isoformat() if row.data_conclusao else None,
        "tempo_assistido_minutos": row.tempo_assistido_minutos or 0,
        "nota_avaliacao": row.nota_avaliacao,
        "atualizado_em": row.atualizado_em.isoformat() if row.atualizado_em else None,
    }


def course_dict(course: Treinamentos, *, with_content: bool = False) -> dict:
    data = {
        "id": course.id,
        "titulo": course.titulo,
        "descricao": course.descricao,
        "categoria": course.categoria,
        "duracao_minutos": course.duracao_minutos,
        "nivel": course.nivel,
        "thumbnail_url": course.thumbnail_url,
        "status": course.status,
        "publicado": course.publicado,
        "obrigatorio": course.obrigatorio,
        "data_limite": course.data_limite.isoformat() if course.data_limite else None,
        "empresa_id": course.empresa_id,
        "instrutor_id": course.instrutor_id,
        "criado_em": course.criado_em.isoformat() if course.criado_em else None,
        "empresa": (
            {"nome": course.empresa.nome, "nome_fantasia": course.empresa.nome_fantasia}
            if course.empresa
            else None
        ),
    }
    if with_content:
        data["conteudo_html"] = course.conteudo_html
    return data


def _catalog_item_dict(item: CatalogItem) -> dict:
    data = course_dict(item.treinamento)
    data["progresso"] = _progress_dict(item.progresso)
    data["instrutor"] = {"nome": item.instrutor_nome} if item.instrutor_nome else None
    return data


def load_visible_course(user, treinamento_id: str) -> Treinamentos:
    course = TreinamentosRepository(get_db()).get_visible(user, treinamento_id)
    if not course:
        abort(404, description="Treinamento não encontrado")
    return course


def progress_response(user, course: Treinamentos, write: ProgressWrite):
    certificate = None
    if write.completed_now:
        cert = on_course_completed(get_db(), user, course)
        if cert:
            certificate = {
                "certificate_hash": cert.certificate_hash,
                "credential_id": cert.credential_id,
            }
    return {
        "progresso": _progress_dict(write.progresso),
        "concluido_agora": write.completed_now,
        "certificado": certificate,
    }


@bp.get("")
def list_treinamentos():
    user = get_current_user()
    only_published = not (
        request.args.get("todos") == "1" and user.role in RolesEnum.managers()
    )
    catalog = TreinamentosRepository(get_db()).list_for_user(
        user,
        request.args.get("empresa"),
        only_published=only_published,
        include_progress=request.args.get("progresso", "1") != "0",
    )
    return jsonify(
        {
            "treinamentos": [_catalog_item_dict(i) for i in catalog.items],
            "stats": catalog.stats.as_dict(),
            "error": catalog.error,
        }
    )


@bp.get("/<string:treinamento_id>")
def get_treinamento(treinamento_id: str):
    user = get_current_user()
    course = load_visible_course(user, treinamento_id)
    progress = ProgressoRepository(get_db()).get(user.id, course.id)
    data = course_dict(course, with_content=True)
    data["progresso"] = _progress_dict(progress)
    return jsonify({"treinamento": data})


@bp.post("/<string:treinamento_id>/iniciar")
def start_treinamento(treinamento_id: str):
    user = get_current_user()
    enforce_csrf()
    course = load_visible_course(user, treinamento_id)
    db = get_db()
    write = ProgressoRepository(db).start_training(user.id, course.id)
    db.commit()
    return jsonify(progress_response(user, course, write))


@bp.post("/<string:treinamento_id>/progresso")
def update_progresso(treinamento_id: str):
    user = get_current_user()
    enforce_csrf()
    try:
        payload: ProgressIn = validate_payload(ProgressIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    course = load_visible_course(user, treinamento_id)
    db = get_db()
    write = ProgressoRepository(db).update_progress(user.id, course.id, payload.percentual)
    db.commit()
    return jsonify(progress_response(user, course, write))


def _deadline_event(course: Treinamentos):
    if not course.data_limite:
        abort(404, description="Treinamento sem prazo definido")
    base = (request.args.get("base_url") or request.url_root).rstrip("/")
    return deadline_event(
        course.titulo,
        course.descricao,
        course.data_limite,
        course.duracao_minutos,
        f"{base}/treinamento/{course.id}",
    )


@bp.get("/<string:treinamento_id>/calendario")
def calendar_links_for(treinamento_id: str):
    user = get_current_user()
    course = load_visible_course(user, treinamento_id)
    prefs = notification_settings(get_db(), user.empresa_id)
    if not prefs.sincronizar_calendario:
        abort(403, description="Sincronização de calendário desativada")
    return jsonify(calendar_links(_deadline_event(course)))


@bp.get("/<string:treinamento_id>/calendario.ics")
def calendar_ics(treinamento_id: str):
    user = get_current_user()
    course = load_visible_course(user, treinamento_id)
    prefs = notification_settings(get_db(), user.empresa_id)
    if not prefs.sincronizar_calendario:
        abort(403, description="Sincronização de calendário desativada")
    filename = re.sub(r"[^a-zA-Z0-9]", "-", course.titulo) or "treinamento"
    return Response(
        generate_ics(_deadline_event(course)),
        mimetype="text/calendar",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}.ics"',
        },
    )
