from datetime import date, datetime
from urllib.parse import parse_qs, urlsplit

from capacita.services.calendar import (
    CalendarEvent,
    calendar_links,
    deadline_event,
    generate_ics,
)


def _event(**overrides) -> CalendarEvent:
    data = dict(
        title="Treinamento: Segurança",
        description="Linha 1\nLinha 2; com, pontuação",
        start=datetime(2026, 5, 20, 9, 0),
        end=datetime(2026, 5, 20, 10, 0),
    )
    data.update(overrides)
    return CalendarEvent(**data)


def test_deadline_event_defaults():
    event = deadline_event("NR-10", None, date(2026, 5, 20))
    assert event.title == "Treinamento: NR-10"
    assert event.description == ""
    assert event.start == datetime(2026, 5, 20, 9, 0)
    assert event.end == datetime(2026, 5, 20, 10, 0)

    longer = deadline_event("NR-10", "x", date(2026, 5, 20), duracao_minutos=150)
    assert longer.end == datetime(2026, 5, 20, 11, 30)


def test_ics_structure_and_escaping():
    ics = generate_ics(
        _event(url="https://portal/treinamento/1"),
        now=datetime(2026, 5, 1, 12, 0),
    )
    lines = ics.split("\r\n")
    assert lines[0] == "BEGIN:VCALENDAR"
    assert lines[-1] == "END:VCALENDAR"
    assert "PRODID:-//Capacita//Calendario de Treinamentos//PT" in lines
    assert "DTSTART:20260520T090000" in lines
    assert "DTEND:20260520T100000" in lines
    assert "DTSTAMP:20260501T120000" in lines
    assert "DESCRIPTION:Linha 1\\nLinha 2\\; com\\, pontuação" in lines
    assert "URL:https://portal/treinamento/1" in lines
    assert "TRIGGER:-PT1H" in lines
    assert not any("\n" in line for line in lines)


def test_ics_uids_are_unique():
    first = [l for l in generate_ics(_event()).split("\r\n") if l.startswith("UID:")]
    second = [l for l in generate_ics(_event()).split("\r\n") if l.startswith("UID:")]
    assert first != second


def test_google_and_outlook_links():
    links = calendar_links(_event(location="Sala 3"))

    google = urlsplit(links["google"])
    assert google.netloc == "calendar.google.com"
    params = parse_qs(google.query)
    assert params["action"] == ["TEMPLATE"]
    assert params["dates"] == ["20260520T090000/20260520T100000"]
    assert params["location"] == ["Sala 3"]

    outlook = parse_qs(urlsplit(links["outlook"]).query)
    assert outlook["rru"] == ["addevent"]
    assert outlook["startdt"] == ["2026-05-20T09:00:00Z"]
    assert outlook["enddt"] == ["2026-05-20T10:00:00Z"]
