from __future__ import annotations

import base64
import io
import logging
from functools import lru_cache
from typing import Optional

import segno
from sqlalchemy.orm import Session

from capacita.models.certificados import Certificados
from capacita.models.perfis import Perfis
from capacita.models.treinamentos import Treinamentos
from capacita.repositories.CertificadosRepository import CertificadosRepository
from capacita.services.notifications import notification_settings, notify_course_completed

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def qr_data_uri(payload: str) -> str:
    qr = segno.make(payload, error="m")
    buf = io.BytesIO()
    qr.save(buf, kind="png", scale=6)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def verification_url(base: str, certificate_hash: str) -> str:
    return f"{base.rstrip('/')}/certificados/?cert_hash={certificate_hash}"


def on_course_completed(
    db: Session, user: Perfis, treinamento: Treinamentos
) -> Optional[Certificados]:
    """Issue the certificate and email the learner when the company allows it."""

    prefs = notification_settings(db, user.empresa_id)
    if not prefs.certificado_automatico:
        return None
    cert = CertificadosRepository(db).ensure_certificate(user.id, treinamento.id)
    db.commit()
    logger.info("Certificado %s emitido para %s", cert.credential_id, user.id)
    notify_course_completed(db, user, treinamento, cert.certificate_hash)
    return cert
