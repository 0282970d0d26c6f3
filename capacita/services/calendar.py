"""Calendar exports for course deadlines: ICS files and web calendar links."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Optional
from urllib.parse import urlencode

ICS_DATE_FORMAT = "%Y%m%dT%H%M%S"
PRODID = "-//Capacita//Calendario de Treinamentos//PT"


@dataclass
class CalendarEvent:
    title: str
    description: str
    start: datetime
    end: datetime
    location: Optional[str] = None
    url: Optional[str] = None


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def generate_ics(event: CalendarEvent, *, now: Optional[datetime] = None) -> str:
    stamp = now or datetime.now()
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"DTSTART:{event.start.strftime(ICS_DATE_FORMAT)}",
        f"DTEND:{event.end.strftime(ICS_DATE_FORMAT)}",
        f"DTSTAMP:{stamp.strftime(ICS_DATE_FORMAT)}",
        f"UID:treinamento-{uuid.uuid4().hex}@capacita",
        f"SUMMARY:{_escape(event.title)}",
        f"DESCRIPTION:{_escape(event.description)}",
    ]
    if event.location:
        lines.append(f"LOCATION:{_escape(event.location)}")
    if event.url:
        lines.append(f"URL:{event.url}")
    lines += [
        "STATUS:CONFIRMED",
        "BEGIN:VALARM",
        "TRIGGER:-PT1H",
        "ACTION:DISPLAY",
        f"DESCRIPTION:Lembrete: {_escape(event.title)}",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def google_calendar_link(event: CalendarEvent) -> str:
    params = {
        "action": "TEMPLATE",
        "text": event.title,
        "details": event.description,
        "dates": (
            f"{event.start.strftime(ICS_DATE_FORMAT)}/"
            f"{event.end.strftime(ICS_DATE_FORMAT)}"
        ),
    }
    if event.location:
        params["location"] = event.location
    if event.url:
        params["sprop"] = f"website:{event.url}"
    return f"https://calendar.google.com/calendar/render?{urlencode(params)}"


def _iso_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def outlook_calendar_link(event: CalendarEvent) -> str:
    params = {
        "path": "/calendar/action/compose",
        "rru": "addevent",
        "subject": event.title,
        "body": event.description,
        "startdt": _iso_utc(event.start),
        "enddt": _iso_utc(event.end),
    }
    if event.location:
        params["location"] = event.location
    return f"https://outlook.live.com/calendar/0/deeplink/compose?{urlencode(params)}"


def calendar_links(event: CalendarEvent) -> Dict[str, str]:
    return {
        "google": google_calendar_link(event),
        "outlook": outlook_calendar_link(event),
    }


def deadline_event(
    titulo: str,
    descricao: Optional[str],
    data_limite: date,
    duracao_minutos: Optional[int] = None,
    url: Optional[str] = None,
) -> CalendarEvent:
    # prazos sem horário ficam às 09:00 do dia limite
    start = datetime.combine(data_limite, time(9, 0))
    end = start + timedelta(minutes=duracao_minutos or 60)
    return CalendarEvent(
        title=f"Treinamento: {titulo}",
        description=descricao or "",
        start=start,
        end=end,
        url=url,
    )
