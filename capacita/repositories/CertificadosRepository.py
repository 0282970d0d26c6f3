from __future__ import annotations

import secrets
from typing import Optional

from sqlalchemy.orm import Session

from capacita.models.base import utcnow
from capacita.models.certificados import Certificados as CertificadosORM
from capacita.models.perfis import Perfis as PerfisORM
from capacita.models.treinamentos import Treinamentos as TreinamentosORM


class CertificadosRepository:
    def __init__(self, db: Session):
        self.db = db

    def _unique_hash(self) -> str:
        while True:
            candidate = secrets.token_hex(8)
            exists = (
                self.db.query(CertificadosORM.id)
                .filter(CertificadosORM.certificate_hash == candidate)
                .first()
            )
            if not exists:
                return candidate

    def ensure_certificate(self, usuario_id: str, treinamento_id: str) -> CertificadosORM:
        cert = self.get_for_user_course(usuario_id, treinamento_id)
        if cert:
            return cert

        token = self._unique_hash()
        cert = CertificadosORM(
            usuario_id=usuario_id,
            treinamento_id=treinamento_id,
            certificate_hash=token,
            credential_id=f"CAP-{token.upper()}",
            emitido_em=utcnow(),
        )
        self.db.add(cert)
        self.db.flush()
        return cert

    def get_for_user_course(
        self, usuario_id: str, treinamento_id: str
    ) -> Optional[CertificadosORM]:
        return (
            self.db.query(CertificadosORM)
            .filter(
                CertificadosORM.usuario_id == usuario_id,
                CertificadosORM.treinamento_id == treinamento_id,
            )
            .first()
        )

    def get_details_by_hash(
        self, certificate_hash: str
    ) -> Optional[tuple[CertificadosORM, PerfisORM, TreinamentosORM]]:
        cleaned = (certificate_hash or "").strip().lower()
        if not cleaned:
            return None
        return (
            self.db.query(CertificadosORM, PerfisORM, TreinamentosORM)
            .join(PerfisORM, PerfisORM.id == CertificadosORM.usuario_id)
            .join(TreinamentosORM, TreinamentosORM.id == CertificadosORM.treinamento_id)
            .filter(CertificadosORM.certificate_hash == cleaned)
            .first()
        )
