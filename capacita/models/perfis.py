# capacita/models/perfis.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capacita.models.base import Base, new_uuid, utcnow
from capacita.models.empresas import Empresas
from capacita.models.roles import RolesEnum


class Perfis(Base):
    __tablename__ = "perfis"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    nome: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(
        String(16), default=RolesEnum.Usuario.value, nullable=False
    )
    empresa_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("empresas.id", ondelete="SET NULL"), nullable=True, index=True
    )
    cargo: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    criado_em: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    empresa: Mapped[Optional[Empresas]] = relationship()

    @property
    def is_master(self) -> bool:
        return self.role == RolesEnum.Master.value


# --------- Pydantic Schemas ---------
from pydantic import BaseModel, EmailStr, field_validator


class RegisterIn(BaseModel):
    email: EmailStr
    password: str
    nome: str
    empresa_id: Optional[str] = None
    cargo: Optional[str] = None
    remember: bool = False

    @field_validator("nome")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Informe seu nome.")
        return value.strip()

    @field_validator("password")
    @classmethod
    def strong_enough(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("A senha deve ter pelo menos 8 caracteres.")
        return value


class LoginIn(BaseModel):
    email: EmailStr
    password: str
    remember: bool = False


class PerfilOut(BaseModel):
    id: str
    email: EmailStr
    nome: str
    role: RolesEnum
    empresa_id: Optional[str] = None
    cargo: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_orm_user(cls, u: "Perfis") -> "PerfilOut":
        return cls(
            id=u.id,
            email=u.email,
            nome=u.nome,
            role=RolesEnum(u.role),
            empresa_id=u.empresa_id,
            cargo=u.cargo,
            avatar_url=u.avatar_url,
        )
