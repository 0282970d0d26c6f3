import time

import pytest

from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum
from capacita.scripts.criar_master import MasterAlreadyExists, create_master, main
from capacita.services.security import verify_password
from capacita.services.timer import ActiveStudyTimer, TimerTicker


def test_create_master_only_once(db_session):
    master = create_master(db_session, "Root@Example.com", "secret123", "Root")
    assert master.role == RolesEnum.Master.value
    assert master.email == "root@example.com"
    assert verify_password("secret123", master.password_hash)

    with pytest.raises(MasterAlreadyExists):
        create_master(db_session, "outro@example.com", "secret123")


def test_main_requires_email_and_password(db_session, capsys):
    assert main(["so-email@example.com"]) == 1
    assert "obrigatórios" in capsys.readouterr().out

    assert main(["master@example.com", "secret123"]) == 0
    assert db_session.query(Perfis).filter_by(email="master@example.com").one()
    assert main(["segundo@example.com", "secret123"]) == 1


def test_ticker_drives_timer_until_completion():
    timer = ActiveStudyTimer(0.05)  # three seconds
    ticker = TimerTicker(timer, interval=0.01)
    timer.start()
    ticker.start()

    deadline = time.monotonic() + 5
    while not timer.is_completed and time.monotonic() < deadline:
        time.sleep(0.01)
    ticker.stop(timeout=1)

    assert timer.is_completed
    assert timer.active_seconds == 3
    assert not ticker.alive
