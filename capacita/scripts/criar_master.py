"""Cria o primeiro usuário master da plataforma.

Uso: python -m capacita.scripts.criar_master email senha [nome]
"""

from __future__ import annotations

import sys

from sqlalchemy import select

import capacita.models  # noqa: F401  # load all models for relationship resolution

from capacita.core.db import session_scope
from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum
from capacita.repositories.PerfisRepository import PerfisRepository
from capacita.services.security import hash_password


class MasterAlreadyExists(Exception):
    pass


def create_master(session, email: str, password: str, nome: str = "Master Admin") -> Perfis:
    existing = session.scalars(
        select(Perfis.id).where(Perfis.role == RolesEnum.Master.value)
    ).first()
    if existing:
        raise MasterAlreadyExists("Já existe um usuário master cadastrado")
    return PerfisRepository(session).create(
        email=email,
        password_hash=hash_password(password),
        nome=nome,
        role=RolesEnum.Master,
    )


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Email e senha são obrigatórios")
        return 1
    email, password = args[0], args[1]
    nome = args[2] if len(args) > 2 else "Master Admin"
    try:
        with session_scope() as session:
            master = create_master(session, email, password, nome)
            print(f"Usuário master criado com sucesso: {master.id}")
    except MasterAlreadyExists as exc:
        print(str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
