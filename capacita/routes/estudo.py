from __future__ import annotations

from flask import Blueprint, abort, jsonify
from pydantic import BaseModel, Field, ValidationError

from capacita.core.db import get_db
from capacita.repositories.ProgressoRepository import ProgressoRepository
from capacita.routes import format_validation_error, validate_payload
from capacita.routes.treinamentos import load_visible_course, progress_response
from capacita.services.security import enforce_csrf, get_current_user
from capacita.services.study_sessions import MAX_HEARTBEAT_SECONDS, registry


bp = Blueprint("estudo", __name__, url_prefix="/estudo")


class HeartbeatIn(BaseModel):
    seconds: int = Field(..., ge=0, le=MAX_HEARTBEAT_SECONDS)
    visible: bool = True
    focused: bool = True


@bp.get("/<string:treinamento_id>")
def get_session(treinamento_id: str):
    user = get_current_user()
    timer = registry.get(user.id, treinamento_id)
    if timer is None:
        abort(404, description="Sessão de estudo não iniciada")
    return jsonify({"timer": timer.snapshot()})


@bp.post("/<string:treinamento_id>/iniciar")
def start_session(treinamento_id: str):
    user = get_current_user()
    enforce_csrf()
    course = load_visible_course(user, treinamento_id)
    timer = registry.get_or_create(user.id, course.id, course.duracao_minutos)
    timer.start()

    db = get_db()
    repo = ProgressoRepository(db)
    if timer.is_completed:
        write = repo.record_study_time(user.id, course.id, timer)
    else:
        write = repo.start_training(user.id, course.id)
    db.commit()
    if timer.is_completed:
        registry.discard(user.id, course.id)
    body = progress_response(user, course, write)
    body["timer"] = timer.snapshot()
    return jsonify(body)


@bp.post("/<string:treinamento_id>/pausar")
def pause_session(treinamento_id: str):
    user = get_current_user()
    enforce_csrf()
    timer = registry.get(user.id, treinamento_id)
    if timer is None:
        abort(404, description="Sessão de estudo não iniciada")
    timer.pause()
    return jsonify({"timer": timer.snapshot()})


@bp.post("/<string:treinamento_id>/reiniciar")
def reset_session(treinamento_id: str):
    user = get_current_user()
    enforce_csrf()
    timer = registry.get(user.id, treinamento_id)
    if timer is None:
        abort(404, description="Sessão de estudo não iniciada")
    timer.reset()
    return jsonify({"timer": timer.snapshot()})


@bp.post("/<string:treinamento_id>/heartbeat")
def heartbeat(treinamento_id: str):
    user = get_current_user()
    enforce_csrf()
    try:
        payload: HeartbeatIn = validate_payload(HeartbeatIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    timer = registry.get(user.id, treinamento_id)
    if timer is None:
        abort(404, description="Sessão de estudo não iniciada")

    result = registry.heartbeat(
        timer,
        seconds=payload.seconds,
        visible=payload.visible,
        focused=payload.focused,
    )
    body = {"timer": timer.snapshot(), "ticks": result.ticks}
    if result.ticks:
        course = load_visible_course(user, treinamento_id)
        db = get_db()
        write = ProgressoRepository(db).record_study_time(user.id, course.id, timer)
        db.commit()
        if result.completed_now:
            registry.discard(user.id, course.id)
        body.update(progress_response(user, course, write))
    return jsonify(body)
