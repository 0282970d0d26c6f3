from datetime import date

from capacita.models.configuracoes_notificacao import ConfiguracoesNotificacao
from capacita.models.roles import RolesEnum
from capacita.models.treinamentos import StatusTreinamento
from capacita.repositories.ProgressoRepository import ProgressoRepository


def test_list_requires_session(client, db_session):
    res = client.get("/treinamentos")
    assert res.status_code == 401
    assert res.get_json()["detail"] == "Não autenticado"


def test_catalog_stats_and_progress(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    empresa = make_empresa()
    user = make_perfil(empresa=empresa)
    done = make_treinamento(empresa, titulo="Concluído")
    doing = make_treinamento(empresa, titulo="Em andamento")
    make_treinamento(empresa, titulo="Novo")
    make_treinamento(empresa, titulo="Rascunho", publicado=False)
    make_treinamento(
        empresa, titulo="Inativo", status=StatusTreinamento.Inativo.value
    )

    repo = ProgressoRepository(db_session)
    repo.update_progress(user.id, done.id, 100)
    repo.update_progress(user.id, doing.id, 35)
    db_session.commit()

    login_as(user)
    res = client.get("/treinamentos")
    assert res.status_code == 200
    body = res.get_json()
    assert body["error"] is None
    assert body["stats"] == {
        "total": 3,
        "concluidos": 1,
        "emProgresso": 1,
        "naoIniciados": 1,
    }
    by_title = {t["titulo"]: t for t in body["treinamentos"]}
    assert set(by_title) == {"Concluído", "Em andamento", "Novo"}
    assert by_title["Em andamento"]["progresso"]["percentual_concluido"] == 35
    assert by_title["Novo"]["progresso"] is None


def test_users_only_see_their_company(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    mine = make_empresa("Minha")
    other = make_empresa("Outra")
    user = make_perfil(empresa=mine)
    make_treinamento(mine, titulo="Interno")
    foreign = make_treinamento(other, titulo="Externo")

    login_as(user)
    titles = [t["titulo"] for t in client.get("/treinamentos").get_json()["treinamentos"]]
    assert titles == ["Interno"]

    assert client.get(f"/treinamentos/{foreign.id}").status_code == 404


def test_master_filters_by_selected_company(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    a = make_empresa("A")
    b = make_empresa("B")
    master = make_perfil(role=RolesEnum.Master)
    make_treinamento(a, titulo="Curso A")
    make_treinamento(b, titulo="Curso B")

    login_as(master)
    all_titles = {
        t["titulo"]
        for t in client.get("/treinamentos?empresa=todas").get_json()["treinamentos"]
    }
    assert {"Curso A", "Curso B"} <= all_titles

    only_b = client.get(f"/treinamentos?empresa={b.id}").get_json()["treinamentos"]
    assert [t["titulo"] for t in only_b] == ["Curso B"]


def test_manager_can_list_unpublished(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    empresa = make_empresa()
    admin = make_perfil(empresa=empresa, role=RolesEnum.Admin)
    make_treinamento(empresa, titulo="Rascunho", publicado=False)

    login_as(admin)
    assert client.get("/treinamentos").get_json()["stats"]["total"] == 0
    assert client.get("/treinamentos?todos=1").get_json()["stats"]["total"] == 1


def test_progress_endpoint_requires_csrf(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    empresa = make_empresa()
    user = make_perfil(empresa=empresa)
    course = make_treinamento(empresa)

    login_as(user)
    res = client.post(f"/treinamentos/{course.id}/progresso", json={"percentual": 50})
    assert res.status_code == 403


def test_completing_issues_certificate(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    empresa = make_empresa()
    user = make_perfil(empresa=empresa)
    course = make_treinamento(empresa, duracao_minutos=30)

    headers = login_as(user)
    started = client.post(f"/treinamentos/{course.id}/iniciar", headers=headers)
    assert started.status_code == 200
    assert started.get_json()["progresso"]["percentual_concluido"] == 1

    res = client.post(
        f"/treinamentos/{course.id}/progresso",
        json={"percentual": 100},
        headers=headers,
    )
    body = res.get_json()
    assert res.status_code == 200
    assert body["concluido_agora"] is True
    assert body["certificado"]["credential_id"].startswith("CAP-")

    again = client.post(
        f"/treinamentos/{course.id}/progresso",
        json={"percentual": 100},
        headers=headers,
    ).get_json()
    assert again["concluido_agora"] is False
    assert again["certificado"] is None

    cert = client.get(f"/certificados/{body['certificado']['certificate_hash']}")
    assert cert.status_code == 200
    payload = cert.get_json()
    assert payload["aluno_nome"] == user.nome
    assert payload["qr_code_data_uri"].startswith("data:image/png;base64,")


def test_automatic_certificate_can_be_disabled(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    empresa = make_empresa()
    db_session.add(
        ConfiguracoesNotificacao(empresa_id=empresa.id, certificado_automatico=False)
    )
    db_session.commit()
    user = make_perfil(empresa=empresa)
    course = make_treinamento(empresa)

    headers = login_as(user)
    body = client.post(
        f"/treinamentos/{course.id}/progresso",
        json={"percentual": 100},
        headers=headers,
    ).get_json()
    assert body["concluido_agora"] is True
    assert body["certificado"] is None

    # still available on demand
    res = client.get(f"/certificados/me/treinamentos/{course.id}")
    assert res.status_code == 200
    assert res.get_json()["treinamento_id"] == course.id


def test_calendar_links_and_ics(
    client, db_session, make_empresa, make_perfil, make_treinamento, login_as
):
    empresa = make_empresa()
    user = make_perfil(empresa=empresa)
    course = make_treinamento(
        empresa, titulo="LGPD", data_limite=date(2026, 3, 10), duracao_minutos=45
    )
    undated = make_treinamento(empresa, titulo="Sem prazo")

    login_as(user)
    links = client.get(f"/treinamentos/{course.id}/calendario").get_json()
    assert links["google"].startswith("https://calendar.google.com/calendar/render?")
    assert "20260310T090000%2F20260310T094500" in links["google"]

    ics = client.get(f"/treinamentos/{course.id}/calendario.ics")
    assert ics.status_code == 200
    assert ics.mimetype == "text/calendar"
    assert 'filename="LGPD.ics"' in ics.headers["Content-Disposition"]
    assert b"SUMMARY:Treinamento: LGPD" in ics.data

    assert client.get(f"/treinamentos/{undated.id}/calendario").status_code == 404
