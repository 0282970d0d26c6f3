from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from capacita.core.db import dialect_insert
from capacita.models.base import new_uuid, utcnow
from capacita.models.progresso_treinamentos import (
    ProgressoTreinamentos as ProgressoORM,
)
from capacita.services.timer import ActiveStudyTimer


@dataclass
class ProgressWrite:
    progresso: ProgressoORM
    completed_now: bool


class ProgressoRepository:
    def __init__(self, db: Session):
        self.db = db

    def _dialect(self) -> str:
        return self.db.get_bind().dialect.name

    def _greatest(self, current, incoming):
        if self._dialect() == "sqlite":
            # max() com dois argumentos é escalar no SQLite
            return func.max(current, incoming)
        return func.greatest(current, incoming)

    def get(self, usuario_id: str, treinamento_id: str) -> Optional[ProgressoORM]:
        return (
            self.db.query(ProgressoORM)
            .filter(
                ProgressoORM.usuario_id == usuario_id,
                ProgressoORM.treinamento_id == treinamento_id,
            )
            .first()
        )

    def upsert(
        self,
        usuario_id: str,
        treinamento_id: str,
        *,
        percentual: float,
        concluido: bool = False,
        tempo_assistido_minutos: int = 0,
    ) -> ProgressWrite:
        """Insert or merge the (user, course) row.

        Percent and watched minutes only move forward, completion is sticky
        and the first start/completion timestamps are kept.
        """

        percentual = max(0.0, min(100.0, float(percentual)))
        concluido = bool(concluido or percentual >= 100)
        now = utcnow()

        was_done = (
            self.db.query(ProgressoORM.concluido)
            .filter(
                ProgressoORM.usuario_id == usuario_id,
                ProgressoORM.treinamento_id == treinamento_id,
            )
            .scalar()
        )

        table = ProgressoORM.__table__
        stmt = dialect_insert(self.db)(table).values(
            id=new_uuid(),
            usuario_id=usuario_id,
            treinamento_id=treinamento_id,
            percentual_concluido=percentual,
            concluido=concluido,
            data_inicio=now,
            data_conclusao=now if concluido else None,
            tempo_assistido_minutos=max(0, int(tempo_assistido_minutos)),
            criado_em=now,
            atualizado_em=now,
        )
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.usuario_id, table.c.treinamento_id],
            set_={
                "percentual_concluido": self._greatest(
                    func.coalesce(table.c.percentual_concluido, 0),
                    excluded.percentual_concluido,
                ),
                "concluido": case(
                    (table.c.concluido.is_(True), True),
                    else_=excluded.concluido,
                ),
                "data_inicio": func.coalesce(table.c.data_inicio, excluded.data_inicio),
                "data_conclusao": func.coalesce(
                    table.c.data_conclusao, excluded.data_conclusao
                ),
                "tempo_assistido_minutos": self._greatest(
                    func.coalesce(table.c.tempo_assistido_minutos, 0),
                    excluded.tempo_assistido_minutos,
                ),
                "atualizado_em": excluded.atualizado_em,
            },
        )
        self.db.execute(stmt)

        row = (
            self.db.query(ProgressoORM)
            .populate_existing()
            .filter(
                ProgressoORM.usuario_id == usuario_id,
                ProgressoORM.treinamento_id == treinamento_id,
            )
            .one()
        )
        return ProgressWrite(progresso=row, completed_now=row.concluido and not was_done)

    def start_training(self, usuario_id: str, treinamento_id: str) -> ProgressWrite:
        return self.upsert(usuario_id, treinamento_id, percentual=1)

    def update_progress(
        self, usuario_id: str, treinamento_id: str, percentual: float
    ) -> ProgressWrite:
        return self.upsert(
            usuario_id,
            treinamento_id,
            percentual=min(100.0, percentual),
            concluido=percentual >= 100,
        )

    def record_study_time(
        self, usuario_id: str, treinamento_id: str, timer: ActiveStudyTimer
    ) -> ProgressWrite:
        return self.upsert(
            usuario_id,
            treinamento_id,
            percentual=100.0 if timer.is_completed else timer.progress,
            concluido=timer.is_completed,
            tempo_assistido_minutos=timer.active_seconds // 60,
        )
