from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from capacita.core.db import dialect_insert
from capacita.models.base import new_uuid, utcnow
from capacita.models.empresas import Empresas
from capacita.models.pagamentos import Pagamentos
from capacita.models.plano_contratos import PlanoContratos
from capacita.models.planos import Planos

logger = logging.getLogger(__name__)

PAYMENT_METHOD = "mercado_pago"
STATUS_PAGO = "pago"


@dataclass
class ApprovedPayment:
    referencia: str
    valor: float
    empresa_id: str
    plano_id: str
    annual: bool
    external_reference: str


class PagamentosRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_plan(self, plano_id: str) -> Optional[Planos]:
        plano = self.db.get(Planos, plano_id)
        if plano is None or not plano.ativo:
            return None
        return plano

    def record_payment(self, approved: ApprovedPayment, today: date) -> bool:
        """Insert the payment once. Returns False when the id was already recorded."""

        table = Pagamentos.__table__
        stmt = (
            dialect_insert(self.db)(table)
            .values(
                id=new_uuid(),
                empresa_id=approved.empresa_id,
                valor=approved.valor,
                status=STATUS_PAGO,
                data_pagamento=today,
                data_vencimento=today,
                metodo_pagamento=PAYMENT_METHOD,
                referencia=approved.referencia,
                observacoes=(
                    "Pagamento via Mercado Pago - "
                    f"{'Anual' if approved.annual else 'Mensal'}"
                ),
                criado_em=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=[table.c.referencia])
            .returning(table.c.id)
        )
        return self.db.execute(stmt).first() is not None

    def upsert_contract(
        self, approved: ApprovedPayment, plano: Planos, today: date
    ) -> None:
        """One contract per external reference; renewals push ``data_fim`` forward."""

        period = timedelta(days=365 if approved.annual else 30)
        table = PlanoContratos.__table__
        now = utcnow()
        stmt = dialect_insert(self.db)(table).values(
            id=new_uuid(),
            empresa_id=approved.empresa_id,
            plano_id=plano.id,
            nome_plano=plano.nome,
            preco_contratado=approved.valor,
            limite_usuarios=plano.limite_usuarios,
            limite_treinamentos=plano.limite_treinamentos,
            data_inicio=today,
            data_fim=today + period,
            ativo=True,
            referencia_externa=approved.external_reference,
            criado_em=now,
            atualizado_em=now,
        )
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.referencia_externa],
            set_={
                "data_fim": excluded.data_fim,
                "ativo": True,
                "atualizado_em": excluded.atualizado_em,
            },
        )
        self.db.execute(stmt)

    def release_company(self, empresa_id: str, plano_id: Optional[str] = None) -> bool:
        empresa = self.db.get(Empresas, empresa_id)
        if empresa is None:
            return False
        empresa.bloqueada = False
        empresa.motivo_bloqueio = None
        empresa.data_bloqueio = None
        empresa.is_demo = False
        if plano_id:
            empresa.plano_id = plano_id
        return True

    def apply_approved_payment(
        self, approved: ApprovedPayment, today: Optional[date] = None
    ) -> bool:
        today = today or date.today()
        plano = self.db.get(Planos, approved.plano_id)
        if plano is None:
            logger.error(
                "Plano %s não encontrado para pagamento %s",
                approved.plano_id,
                approved.referencia,
            )
            return False
        if self.db.get(Empresas, approved.empresa_id) is None:
            logger.error(
                "Empresa %s não encontrada para pagamento %s",
                approved.empresa_id,
                approved.referencia,
            )
            return False

        if not self.record_payment(approved, today):
            logger.info("Pagamento %s já processado", approved.referencia)
            return True
        self.upsert_contract(approved, plano, today)
        self.release_company(approved.empresa_id, plano.id)
        self.db.commit()
        logger.info(
            "Pagamento %s processado para empresa %s",
            approved.referencia,
            approved.empresa_id,
        )
        return True

    def list_plans(self) -> list[Planos]:
        return (
            self.db.query(Planos)
            .filter(Planos.ativo.is_(True))
            .order_by(Planos.preco)
            .all()
        )
