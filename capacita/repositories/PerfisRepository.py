from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum


class PerfisRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[Perfis]:
        return self.db.scalars(
            select(Perfis).where(func.lower(Perfis.email) == email.strip().lower())
        ).first()

    def exists_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def create(
        self,
        *,
        email: str,
        password_hash: str,
        nome: str,
        empresa_id: Optional[str] = None,
        cargo: Optional[str] = None,
        role: RolesEnum = RolesEnum.Usuario,
    ) -> Perfis:
        perfil = Perfis(
            email=email.strip().lower(),
            password_hash=password_hash,
            nome=nome,
            empresa_id=empresa_id,
            cargo=cargo,
            role=role.value,
        )
        self.db.add(perfil)
        self.db.commit()
        self.db.refresh(perfil)
        return perfil
