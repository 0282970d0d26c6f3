from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from capacita.core.settings import settings
from capacita.models.configuracoes_notificacao import (
    ConfiguracoesNotificacao,
    NotificationSettingsOut,
)
from capacita.models.perfis import Perfis
from capacita.models.treinamentos import Treinamentos
from capacita.services.calendar import calendar_links, deadline_event
from capacita.services.theme import company_palette, hsl_to_hex


logger = logging.getLogger(__name__)


def _base_url() -> str:
    return (settings.app_base_url or settings.API_ORIGIN).rstrip("/")


def _course_url(treinamento_id: str) -> str:
    return f"{_base_url()}/treinamento/{treinamento_id}"


def notification_settings(db: Session, empresa_id: Optional[str]) -> NotificationSettingsOut:
    if not empresa_id:
        return NotificationSettingsOut()
    try:
        row = db.scalars(
            select(ConfiguracoesNotificacao).where(
                ConfiguracoesNotificacao.empresa_id == empresa_id
            )
        ).first()
    except SQLAlchemyError:
        logger.exception("Erro ao carregar configurações de notificação de %s", empresa_id)
        return NotificationSettingsOut()
    if row is None:
        return NotificationSettingsOut()
    return NotificationSettingsOut.model_validate(row)


def _render_email_html(
    title: str,
    body: str,
    *,
    brand_color: str,
    action_url: str | None = None,
    action_label: str | None = None,
    extra_html: str = "",
) -> str:
    background_color = "#f3f4f6"
    button_html = ""
    if action_url and action_label:
        button_html = f"""
            <tr>
                <td align="center" style="padding: 24px;">
                    <a href="{action_url}" style="display: inline-block; padding: 14px 32px; border-radius: 8px; background-color: {brand_color}; color: #ffffff; font-weight: 600; text-decoration: none;">{action_label}</a>
                </td>
            </tr>
        """

    return f"""
    <html lang="pt-BR">
        <body style="margin:0;padding:0;background-color:{background_color};">
            <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color:{background_color};padding:24px 12px;font-family:'Helvetica Neue',Helvetica,Arial,sans-serif;">
                <tr>
                    <td align="center">
                        <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="max-width:600px;background-color:#ffffff;border-radius:12px;overflow:hidden;border:1px solid #e5e7eb;">
                            <tr>
                                <td style="background-color:{brand_color};color:#ffffff;padding:24px 32px;font-size:22px;font-weight:700;">Capacita</td>
                            </tr>
                            <tr>
                                <td style="padding:32px;color:#1f2937;font-size:16px;line-height:1.6;">
                                    <h1 style="margin:0 0 16px 0;font-size:22px;color:{brand_color};">{title}</h1>
                                    <p style="margin:0 0 12px 0;">{body}</p>
                                    {extra_html}
                                </td>
                            </tr>
                            {button_html}
                            <tr>
                                <td style="padding:24px 32px 32px 32px;color:#9ca3af;font-size:12px;line-height:1.4;text-align:center;">
                                    Você recebeu este e-mail porque está cadastrado no portal de treinamentos da sua empresa.
                                    Ajuste suas preferências nas configurações do portal.
                                </td>
                            </tr>
                        </table>
                    </td>
                </tr>
            </table>
        </body>
    </html>
    """


def _render_email_text(
    title: str,
    body: str,
    *,
    action_url: str | None = None,
    action_label: str | None = None,
) -> str:
    text = f"{title}\n\n{body}"
    if action_url and action_label:
        text += f"\n\n{action_label}: {action_url}"
    text += f"\n\n{settings.smtp_from_name}"
    return text


def _calendar_buttons_html(links: dict[str, str]) -> str:
    google = html.escape(links["google"], quote=True)
    outlook = html.escape(links["outlook"], quote=True)
    return f"""
        <table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 20px 0;">
            <tr>
                <td style="padding-right: 10px;">
                    <a href="{google}" style="display:inline-block;padding:12px 24px;background-color:#4285F4;color:#ffffff;text-decoration:none;border-radius:6px;font-weight:bold;">Adicionar ao Google Calendar</a>
                </td>
                <td>
                    <a href="{outlook}" style="display:inline-block;padding:12px 24px;background-color:#0078D4;color:#ffffff;text-decoration:none;border-radius:6px;font-weight:bold;">Adicionar ao Outlook</a>
                </td>
            </tr>
        </table>
    """


def send_email(
    *, subject: str, to: Iterable[str], html_body: str, text_body: str | None = None
) -> bool:
    recipients = [addr for addr in to if addr]
    if not recipients:
        logger.warning("Nenhum destinatário informado para email '%s'", subject)
        return False

    if not settings.smtp_host or not settings.smtp_from_email:
        logger.info(
            "SMTP não configurado; email '%s' para %s foi ignorado.",
            subject,
            ", ".join(recipients),
        )
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = formataddr((settings.smtp_from_name, settings.smtp_from_email))
    message["To"] = ", ".join(recipients)
    message.set_content(text_body or "Seu cliente de email não suporta conteúdo em HTML.")
    message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(
            settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout
        ) as server:
            if settings.smtp_starttls:
                server.starttls()
            if settings.smtp_user:
                server.login(settings.smtp_user, settings.smtp_password or "")
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Falha ao enviar email '%s': %s", subject, exc)
        return False
    logger.info("Email '%s' enviado para %s", subject, ", ".join(recipients))
    return True


def _brand_color(db: Session, empresa_id: Optional[str]) -> str:
    return hsl_to_hex(company_palette(db, empresa_id).primary)


def notify_new_course(db: Session, treinamento: Treinamentos) -> int:
    """Email every active member of the owning company; returns emails sent."""

    prefs = notification_settings(db, treinamento.empresa_id)
    if not (prefs.notificacoes_email and prefs.alerta_novo_curso):
        return 0
    if not treinamento.empresa_id:
        return 0

    try:
        members = db.scalars(
            select(Perfis).where(
                Perfis.empresa_id == treinamento.empresa_id, Perfis.ativo.is_(True)
            )
        ).all()
    except SQLAlchemyError:
        logger.exception("Erro ao listar usuários da empresa %s", treinamento.empresa_id)
        return 0

    brand = _brand_color(db, treinamento.empresa_id)
    titulo = html.escape(treinamento.titulo)
    url = _course_url(treinamento.id)
    extra = ""
    if treinamento.data_limite and prefs.sincronizar_calendario:
        event = deadline_event(
            treinamento.titulo,
            treinamento.descricao,
            treinamento.data_limite,
            treinamento.duracao_minutos,
            url,
        )
        extra = _calendar_buttons_html(calendar_links(event))

    sent = 0
    for member in members:
        body = (
            f"Olá, {html.escape(member.nome)}! O treinamento '{titulo}' "
            "já está disponível no portal."
        )
        if treinamento.data_limite:
            body += f" Prazo para conclusão: {treinamento.data_limite.strftime('%d/%m/%Y')}."
        ok = send_email(
            subject=f"Novo treinamento disponível: {treinamento.titulo}",
            to=[member.email],
            html_body=_render_email_html(
                "Novo treinamento disponível",
                body,
                brand_color=brand,
                action_url=url,
                action_label="Acessar treinamento",
                extra_html=extra,
            ),
            text_body=_render_email_text(
                "Novo treinamento disponível",
                body,
                action_url=url,
                action_label="Acessar treinamento",
            ),
        )
        sent += int(ok)
    return sent


def notify_course_completed(
    db: Session, user: Perfis, treinamento: Treinamentos, certificate_hash: str
) -> bool:
    prefs = notification_settings(db, user.empresa_id)
    if not (prefs.notificacoes_email and prefs.certificado_automatico):
        return False

    horas = round((treinamento.duracao_minutos or 0) / 60, 1)
    cert_url = f"{_base_url()}/certificados/?cert_hash={certificate_hash}"
    body = (
        f"Parabéns, {html.escape(user.nome)}! Você concluiu o treinamento "
        f"'{html.escape(treinamento.titulo)}' (carga horária: {horas:g} horas). "
        "Seu certificado já está disponível no portal."
    )
    return send_email(
        subject="Parabéns! Seu certificado está pronto",
        to=[user.email],
        html_body=_render_email_html(
            "Você concluiu o treinamento!",
            body,
            brand_color=_brand_color(db, user.empresa_id),
            action_url=cert_url,
            action_label="Baixar certificado",
        ),
        text_body=_render_email_text(
            "Você concluiu o treinamento!",
            body,
            action_url=cert_url,
            action_label="Baixar certificado",
        ),
    )


def send_deadline_reminder(
    db: Session, user: Perfis, treinamento: Treinamentos, hours_left: int
) -> bool:
    url = _course_url(treinamento.id)
    prazo = treinamento.data_limite.strftime("%d/%m/%Y") if treinamento.data_limite else ""
    body = (
        f"Olá, {html.escape(user.nome)}! O prazo do treinamento "
        f"'{html.escape(treinamento.titulo)}' termina em {prazo} "
        f"(menos de {hours_left} horas). Conclua-o para garantir seu certificado."
    )
    return send_email(
        subject=f"Lembrete: prazo do treinamento {treinamento.titulo}",
        to=[user.email],
        html_body=_render_email_html(
            "Lembrete de prazo",
            body,
            brand_color=_brand_color(db, user.empresa_id),
            action_url=url,
            action_label="Continuar treinamento",
        ),
        text_body=_render_email_text(
            "Lembrete de prazo", body, action_url=url, action_label="Continuar treinamento"
        ),
    )


__all__ = [
    "notification_settings",
    "notify_course_completed",
    "notify_new_course",
    "send_deadline_reminder",
    "send_email",
]
