from __future__ import annotations

from datetime import datetime

from flask import Blueprint, abort, jsonify, request
from pydantic import BaseModel

from capacita.core.db import get_db
from capacita.repositories.CertificadosRepository import CertificadosRepository
from capacita.repositories.ProgressoRepository import ProgressoRepository
from capacita.repositories.TreinamentosRepository import TreinamentosRepository
from capacita.services.certificates import qr_data_uri, verification_url
from capacita.services.security import get_current_user


bp = Blueprint("certificados", __name__, url_prefix="/certificados")


class CertificateResponse(BaseModel):
    treinamento_id: str
    treinamento_titulo: str
    carga_horaria_minutos: int | None
    aluno_nome: str
    credential_id: str
    certificate_hash: str
    emitido_em: str | None
    verification_url: str
    qr_code_data_uri: str


def _format_datetime(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _certificate_payload(cert, user, course) -> dict:
    verify_base = request.args.get("verify_base") or request.url_root
    url = verification_url(verify_base, cert.certificate_hash)
    payload = CertificateResponse(
        treinamento_id=course.id,
        treinamento_titulo=course.titulo,
        carga_horaria_minutos=course.duracao_minutos,
        aluno_nome=user.nome,
        credential_id=cert.credential_id,
        certificate_hash=cert.certificate_hash,
        emitido_em=_format_datetime(cert.emitido_em),
        verification_url=url,
        qr_code_data_uri=qr_data_uri(url),
    )
    return payload.model_dump(mode="json")


@bp.get("/<string:certificate_hash>")
def get_certificate(certificate_hash: str):
    row = CertificadosRepository(get_db()).get_details_by_hash(certificate_hash)
    if not row:
        abort(404, description="Certificado não encontrado")
    cert, user, course = row
    return jsonify(_certificate_payload(cert, user, course))


@bp.get("/me/treinamentos/<string:treinamento_id>")
def get_my_certificate(treinamento_id: str):
    user = get_current_user()
    db = get_db()
    repo = CertificadosRepository(db)
    cert = repo.get_for_user_course(user.id, treinamento_id)
    if cert is None:
        progress = ProgressoRepository(db).get(user.id, treinamento_id)
        if not progress or not progress.concluido:
            abort(404, description="Certificado não encontrado para este treinamento")
        # conclusões anteriores ao certificado automático
        cert = repo.ensure_certificate(user.id, treinamento_id)
        db.commit()
    course = TreinamentosRepository(db).get(treinamento_id)
    if course is None:
        abort(404, description="Treinamento não encontrado")
    return jsonify(_certificate_payload(cert, user, course))
