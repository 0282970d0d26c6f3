from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from capacita.models.perfis import Perfis as PerfisORM
from capacita.models.progresso_treinamentos import (
    ProgressoTreinamentos as ProgressoORM,
)
from capacita.models.treinamentos import (
    StatusTreinamento,
    Treinamentos as TreinamentosORM,
)
from capacita.services.theme import ALL_COMPANIES

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "titulo",
    "descricao",
    "categoria",
    "duracao_minutos",
    "nivel",
    "thumbnail_url",
    "conteudo_html",
    "status",
    "obrigatorio",
    "data_limite",
    "instrutor_id",
)


@dataclass
class CatalogItem:
    treinamento: TreinamentosORM
    progresso: Optional[ProgressoORM] = None
    instrutor_nome: Optional[str] = None


@dataclass
class CatalogStats:
    total: int = 0
    concluidos: int = 0
    em_progresso: int = 0
    nao_iniciados: int = 0

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "concluidos": self.concluidos,
            "emProgresso": self.em_progresso,
            "naoIniciados": self.nao_iniciados,
        }


@dataclass
class Catalog:
    items: List[CatalogItem] = field(default_factory=list)
    stats: CatalogStats = field(default_factory=CatalogStats)
    error: Optional[str] = None


def compute_stats(items: List[CatalogItem]) -> CatalogStats:
    def pct(item: CatalogItem) -> float:
        return float(item.progresso.percentual_concluido or 0) if item.progresso else 0.0

    return CatalogStats(
        total=len(items),
        concluidos=sum(1 for i in items if i.progresso and i.progresso.concluido),
        em_progresso=sum(
            1
            for i in items
            if i.progresso and pct(i) > 0 and not i.progresso.concluido
        ),
        nao_iniciados=sum(1 for i in items if not i.progresso or pct(i) == 0),
    )


class TreinamentosRepository:
    def __init__(self, db: Session):
        self.db = db

    def _scoped_query(
        self,
        user: PerfisORM,
        empresa_selecionada: Optional[str],
        only_published: bool,
    ):
        query = self.db.query(TreinamentosORM).options(
            joinedload(TreinamentosORM.empresa)
        )
        if only_published:
            query = query.filter(
                TreinamentosORM.publicado.is_(True),
                TreinamentosORM.status != StatusTreinamento.Inativo.value,
            )
        if user.is_master:
            if empresa_selecionada and empresa_selecionada != ALL_COMPANIES:
                query = query.filter(TreinamentosORM.empresa_id == empresa_selecionada)
        elif user.empresa_id:
            query = query.filter(TreinamentosORM.empresa_id == user.empresa_id)
        else:
            query = query.filter(TreinamentosORM.empresa_id.is_(None))
        return query

    def list_for_user(
        self,
        user: PerfisORM,
        empresa_selecionada: Optional[str] = None,
        *,
        only_published: bool = True,
        include_progress: bool = True,
    ) -> Catalog:
        """Courses visible to ``user`` joined in memory with progress and instructors."""

        try:
            courses = (
                self._scoped_query(user, empresa_selecionada, only_published)
                .order_by(TreinamentosORM.criado_em.desc())
                .all()
            )
        except SQLAlchemyError:
            logger.exception("Erro ao buscar treinamentos")
            return Catalog(error="Erro ao carregar treinamentos")

        course_ids = [c.id for c in courses]

        progress_map: Dict[str, ProgressoORM] = {}
        if include_progress and course_ids:
            try:
                rows = (
                    self.db.query(ProgressoORM)
                    .filter(
                        ProgressoORM.usuario_id == user.id,
                        ProgressoORM.treinamento_id.in_(course_ids),
                    )
                    .all()
                )
                progress_map = {row.treinamento_id: row for row in rows}
            except SQLAlchemyError:
                logger.exception("Erro ao buscar progresso do usuário %s", user.id)

        instructor_ids = {c.instrutor_id for c in courses if c.instrutor_id}
        instructor_map: Dict[str, str] = {}
        if instructor_ids:
            try:
                instructor_map = dict(
                    self.db.query(PerfisORM.id, PerfisORM.nome)
                    .filter(PerfisORM.id.in_(instructor_ids))
                    .all()
                )
            except SQLAlchemyError:
                logger.exception("Erro ao buscar instrutores")

        items = [
            CatalogItem(
                treinamento=course,
                progresso=progress_map.get(course.id),
                instrutor_nome=instructor_map.get(course.instrutor_id)
                if course.instrutor_id
                else None,
            )
            for course in courses
        ]
        return Catalog(items=items, stats=compute_stats(items))

    def get(self, treinamento_id: str) -> Optional[TreinamentosORM]:
        return (
            self.db.query(TreinamentosORM)
            .options(joinedload(TreinamentosORM.empresa))
            .filter(TreinamentosORM.id == treinamento_id)
            .first()
        )

    def get_visible(
        self, user: PerfisORM, treinamento_id: str
    ) -> Optional[TreinamentosORM]:
        return (
            self._scoped_query(user, None, only_published=not user.is_master)
            .filter(TreinamentosORM.id == treinamento_id)
            .first()
        )

    def list_admin(self, empresa_id: Optional[str]) -> List[TreinamentosORM]:
        query = self.db.query(TreinamentosORM)
        if empresa_id:
            query = query.filter(TreinamentosORM.empresa_id == empresa_id)
        return query.order_by(TreinamentosORM.criado_em.desc()).all()

    def create(self, *, empresa_id: Optional[str], **fields) -> TreinamentosORM:
        course = TreinamentosORM(
            empresa_id=empresa_id,
            **{k: v for k, v in fields.items() if k in EDITABLE_FIELDS},
        )
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)
        return course

    def update(self, treinamento_id: str, **fields) -> TreinamentosORM:
        course = self.get(treinamento_id)
        if not course:
            raise LookupError("Treinamento não encontrado")
        for key, value in fields.items():
            if key in EDITABLE_FIELDS:
                setattr(course, key, value)
        self.db.commit()
        self.db.refresh(course)
        return course

    def set_published(self, treinamento_id: str, publicado: bool) -> TreinamentosORM:
        course = self.get(treinamento_id)
        if not course:
            raise LookupError("Treinamento não encontrado")
        course.publicado = publicado
        if publicado and course.status == StatusTreinamento.Rascunho.value:
            course.status = StatusTreinamento.Ativo.value
        self.db.commit()
        self.db.refresh(course)
        return course

    def soft_delete(self, treinamento_id: str) -> TreinamentosORM:
        """Courses are never removed: deletion deactivates and unpublishes."""

        course = self.get(treinamento_id)
        if not course:
            raise LookupError("Treinamento não encontrado")
        course.status = StatusTreinamento.Inativo.value
        course.publicado = False
        self.db.commit()
        self.db.refresh(course)
        return course

    def report_rows(self, empresa_id: Optional[str]) -> List[dict]:
        """One row per (course, learner) progress record, for admin exports."""

        query = (
            self.db.query(ProgressoORM, TreinamentosORM, PerfisORM)
            .join(TreinamentosORM, TreinamentosORM.id == ProgressoORM.treinamento_id)
            .join(PerfisORM, PerfisORM.id == ProgressoORM.usuario_id)
        )
        if empresa_id:
            query = query.filter(TreinamentosORM.empresa_id == empresa_id)
        rows = query.order_by(TreinamentosORM.titulo, PerfisORM.nome).all()
        return [
            {
                "treinamento": course.titulo,
                "categoria": course.categoria,
                "usuario": user.nome,
                "email": user.email,
                "percentual": float(progress.percentual_concluido or 0),
                "concluido": progress.concluido,
                "tempo_minutos": progress.tempo_assistido_minutos or 0,
                "data_inicio": progress.data_inicio,
                "data_conclusao": progress.data_conclusao,
            }
            for progress, course, user in rows
        ]
