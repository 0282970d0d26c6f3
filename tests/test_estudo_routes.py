from capacita.repositories.CertificadosRepository import CertificadosRepository
from capacita.repositories.ProgressoRepository import ProgressoRepository
from capacita.services.study_sessions import registry


def _course_and_user(make_empresa, make_perfil, make_treinamento, minutes=1):
    empresa = make_empresa()
    user = make_perfil(empresa=empresa)
    course = make_treinamento(empresa, duracao_minutos=minutes)
    return user, course


def test_session_must_be_started(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    user, course = _course_and_user(make_empresa, make_perfil, make_treinamento)
    headers = login_as(user)

    assert client.get(f"/estudo/{course.id}").status_code == 404
    res = client.post(
        f"/estudo/{course.id}/heartbeat", json={"seconds": 10}, headers=headers
    )
    assert res.status_code == 404


def test_start_registers_progress_and_running_timer(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    user, course = _course_and_user(make_empresa, make_perfil, make_treinamento, 30)
    headers = login_as(user)

    res = client.post(f"/estudo/{course.id}/iniciar", headers=headers)
    body = res.get_json()
    assert res.status_code == 200
    assert body["timer"]["state"] == "running"
    assert body["timer"]["target_seconds"] == 1800
    assert body["progresso"]["percentual_concluido"] == 1


def test_heartbeats_complete_course_and_issue_certificate(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    user, course = _course_and_user(make_empresa, make_perfil, make_treinamento)
    headers = login_as(user)
    client.post(f"/estudo/{course.id}/iniciar", headers=headers)

    half = client.post(
        f"/estudo/{course.id}/heartbeat",
        json={"seconds": 30, "visible": True, "focused": True},
        headers=headers,
    ).get_json()
    assert half["ticks"] == 30
    assert half["timer"]["progress"] == 50.0
    assert half["progresso"]["percentual_concluido"] == 50
    assert half["concluido_agora"] is False

    done = client.post(
        f"/estudo/{course.id}/heartbeat",
        json={"seconds": 30, "visible": True, "focused": True},
        headers=headers,
    ).get_json()
    assert done["timer"]["state"] == "completed"
    assert done["concluido_agora"] is True
    assert done["progresso"]["concluido"] is True
    assert done["progresso"]["tempo_assistido_minutos"] == 1
    assert done["certificado"] is not None

    cert = CertificadosRepository(db_session).get_for_user_course(user.id, course.id)
    assert cert.certificate_hash == done["certificado"]["certificate_hash"]

    assert registry.get(user.id, course.id) is None
    assert client.get(f"/estudo/{course.id}").status_code == 404
    late = client.post(
        f"/estudo/{course.id}/heartbeat", json={"seconds": 30}, headers=headers
    )
    assert late.status_code == 404

    restarted = client.post(f"/estudo/{course.id}/iniciar", headers=headers).get_json()
    assert restarted["timer"]["active_seconds"] == 0
    assert restarted["progresso"]["concluido"] is True


def test_hidden_page_does_not_advance_progress(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    user, course = _course_and_user(make_empresa, make_perfil, make_treinamento)
    headers = login_as(user)
    client.post(f"/estudo/{course.id}/iniciar", headers=headers)

    body = client.post(
        f"/estudo/{course.id}/heartbeat",
        json={"seconds": 45, "visible": False, "focused": True},
        headers=headers,
    ).get_json()
    assert body["timer"]["active_seconds"] == 0
    assert body["timer"]["total_seconds"] == 45
    assert body["timer"]["is_page_visible"] is False

    progress = ProgressoRepository(db_session).get(user.id, course.id)
    assert progress.percentual_concluido == 1


def test_heartbeat_rejects_more_than_a_minute(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    user, course = _course_and_user(make_empresa, make_perfil, make_treinamento)
    headers = login_as(user)
    client.post(f"/estudo/{course.id}/iniciar", headers=headers)

    res = client.post(
        f"/estudo/{course.id}/heartbeat", json={"seconds": 600}, headers=headers
    )
    assert res.status_code == 422


def test_pause_and_reset(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    user, course = _course_and_user(make_empresa, make_perfil, make_treinamento, 10)
    headers = login_as(user)
    client.post(f"/estudo/{course.id}/iniciar", headers=headers)
    client.post(f"/estudo/{course.id}/heartbeat", json={"seconds": 20}, headers=headers)

    paused = client.post(f"/estudo/{course.id}/pausar", headers=headers).get_json()
    assert paused["timer"]["state"] == "paused"
    assert paused["timer"]["active_seconds"] == 20

    ignored = client.post(
        f"/estudo/{course.id}/heartbeat", json={"seconds": 20}, headers=headers
    ).get_json()
    assert ignored["ticks"] == 0

    reset = client.post(f"/estudo/{course.id}/reiniciar", headers=headers).get_json()
    assert reset["timer"]["state"] == "idle"
    assert reset["timer"]["active_seconds"] == 0
