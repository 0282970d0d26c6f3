from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from capacita.models.configuracoes_notificacao import (
    ConfiguracoesNotificacao,
    NotificationSettingsIn,
)
from capacita.models.empresas import Empresas
from capacita.services.cnpj import clean_cnpj


class EmpresasRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, empresa_id: str) -> Optional[Empresas]:
        return self.db.get(Empresas, empresa_id)

    def list_active(self) -> List[Empresas]:
        return list(
            self.db.scalars(
                select(Empresas).where(Empresas.ativo.is_(True)).order_by(Empresas.nome)
            )
        )

    def get_by_cnpj(self, cnpj: str) -> Optional[Empresas]:
        return self.db.scalars(
            select(Empresas).where(Empresas.cnpj == clean_cnpj(cnpj))
        ).first()

    def set_theme(self, empresa_id: str, tema_cor: Optional[str]) -> Empresas:
        empresa = self.get(empresa_id)
        if not empresa:
            raise LookupError("Empresa não encontrada")
        empresa.tema_cor = tema_cor
        self.db.commit()
        self.db.refresh(empresa)
        return empresa

    def get_notification_settings(
        self, empresa_id: str
    ) -> Optional[ConfiguracoesNotificacao]:
        return self.db.scalars(
            select(ConfiguracoesNotificacao).where(
                ConfiguracoesNotificacao.empresa_id == empresa_id
            )
        ).first()

    def update_notification_settings(
        self, empresa_id: str, payload: NotificationSettingsIn
    ) -> ConfiguracoesNotificacao:
        row = self.get_notification_settings(empresa_id)
        if row is None:
            row = ConfiguracoesNotificacao(empresa_id=empresa_id)
            self.db.add(row)
        for key, value in payload.model_dump(exclude_none=True).items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row
