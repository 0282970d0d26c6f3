"""Envia lembretes de prazo dos treinamentos.

Agendar de hora em hora: cada execução notifica os colaboradores cujo prazo
entra na antecedência configurada pela empresa durante a última hora.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select

import capacita.models  # noqa: F401  # load all models for relationship resolution

from capacita.core.db import session_scope
from capacita.models.configuracoes_notificacao import ConfiguracoesNotificacao
from capacita.models.perfis import Perfis
from capacita.models.progresso_treinamentos import ProgressoTreinamentos
from capacita.models.treinamentos import StatusTreinamento, Treinamentos
from capacita.services.calendar import deadline_event
from capacita.services.notifications import send_deadline_reminder

RUN_INTERVAL = timedelta(hours=1)

Reminder = Tuple[Perfis, Treinamentos, int]


def collect_due_reminders(
    session, now: datetime, interval: timedelta = RUN_INTERVAL
) -> List[Reminder]:
    configs = session.scalars(
        select(ConfiguracoesNotificacao).where(
            ConfiguracoesNotificacao.lembrete_antes_curso.is_(True),
            ConfiguracoesNotificacao.notificacoes_email.is_(True),
        )
    ).all()

    due: List[Reminder] = []
    for config in configs:
        hours = config.horas_antes_lembrete or 24
        courses = session.scalars(
            select(Treinamentos).where(
                Treinamentos.empresa_id == config.empresa_id,
                Treinamentos.publicado.is_(True),
                Treinamentos.status != StatusTreinamento.Inativo.value,
                Treinamentos.data_limite.is_not(None),
            )
        ).all()
        for course in courses:
            deadline = deadline_event(
                course.titulo, course.descricao, course.data_limite
            ).start
            remaining = deadline - now
            if not (timedelta(hours=hours) - interval < remaining <= timedelta(hours=hours)):
                continue

            finished = set(
                session.scalars(
                    select(ProgressoTreinamentos.usuario_id).where(
                        ProgressoTreinamentos.treinamento_id == course.id,
                        ProgressoTreinamentos.concluido.is_(True),
                    )
                )
            )
            members = session.scalars(
                select(Perfis).where(
                    Perfis.empresa_id == config.empresa_id, Perfis.ativo.is_(True)
                )
            ).all()
            due.extend((m, course, hours) for m in members if m.id not in finished)
    return due


def main(now: Optional[datetime] = None) -> int:
    now = now or datetime.now()
    sent = 0
    with session_scope() as session:
        reminders = collect_due_reminders(session, now)
        if not reminders:
            print("Nenhum lembrete de prazo pendente.")
            return 0
        for user, course, hours in reminders:
            sent += int(send_deadline_reminder(session, user, course, hours))
    print(f"Lembretes enviados: {sent} de {len(reminders)}.")
    return sent


if __name__ == "__main__":
    main()
