from capacita.models.roles import RolesEnum
from capacita.routes import empresas as empresas_routes


def test_public_company_list(client, db_session, make_empresa):
    make_empresa("Ativa", nome_fantasia="Ativa S/A")
    make_empresa("Inativa", ativo=False)
    names = [e["nome"] for e in client.get("/empresas").get_json()["empresas"]]
    assert "Ativa S/A" in names
    assert "Inativa" not in names


def test_palettes_listing(client):
    body = client.get("/empresas/paletas").get_json()
    assert len(body["paletas"]) == 12
    assert body["paletas"][0]["hex"].startswith("#")


def test_admin_sets_company_theme(
    client, db_session, make_empresa, make_perfil, login_as
):
    empresa = make_empresa()
    admin = make_perfil(empresa=empresa, role=RolesEnum.Admin)
    headers = login_as(admin)

    res = client.put(
        f"/empresas/{empresa.id}/tema", json={"tema_cor": "Teal"}, headers=headers
    )
    assert res.status_code == 200
    assert res.get_json()["tema_cor"] == "teal"

    theme = client.get(f"/empresas/{empresa.id}/tema").get_json()
    assert theme["paleta"] == "teal"

    bad = client.put(
        f"/empresas/{empresa.id}/tema", json={"tema_cor": "neon"}, headers=headers
    )
    assert bad.status_code == 422


def test_admin_cannot_touch_other_company(
    client, db_session, make_empresa, make_perfil, login_as
):
    admin = make_perfil(empresa=make_empresa("A"), role=RolesEnum.Admin)
    other = make_empresa("B")
    headers = login_as(admin)
    res = client.put(f"/empresas/{other.id}/tema", json={"tema_cor": "red"}, headers=headers)
    assert res.status_code == 403


def test_master_theme_css_follows_selection(
    client, db_session, make_empresa, make_perfil, login_as
):
    empresa = make_empresa(tema_cor="emerald")
    master = make_perfil(role=RolesEnum.Master)
    login_as(master)

    css = client.get(f"/empresas/tema.css?empresa={empresa.id}")
    assert css.mimetype == "text/css"
    assert b"--primary: 160 84% 39%;" in css.data

    default = client.get("/empresas/tema?empresa=todas").get_json()
    assert default["paleta"] == "purple"


def test_notification_settings_roundtrip(
    client, db_session, make_empresa, make_perfil, login_as
):
    empresa = make_empresa()
    admin = make_perfil(empresa=empresa, role=RolesEnum.Admin)
    headers = login_as(admin)

    initial = client.get(f"/empresas/{empresa.id}/notificacoes").get_json()
    assert initial["configuracoes"]["horas_antes_lembrete"] == 24

    res = client.patch(
        f"/empresas/{empresa.id}/notificacoes",
        json={"horas_antes_lembrete": 48, "alerta_novo_curso": False},
        headers=headers,
    )
    assert res.status_code == 200
    cfg = res.get_json()["configuracoes"]
    assert cfg["horas_antes_lembrete"] == 48
    assert cfg["alerta_novo_curso"] is False
    assert cfg["certificado_automatico"] is True

    invalid = client.patch(
        f"/empresas/{empresa.id}/notificacoes",
        json={"horas_antes_lembrete": 5},
        headers=headers,
    )
    assert invalid.status_code == 422


def test_cnpj_lookup_flags_registered_company(
    client, db_session, make_empresa, make_perfil, login_as, monkeypatch
):
    make_empresa(cnpj="11222333000181")
    admin = make_perfil(role=RolesEnum.Master)
    monkeypatch.setattr(
        empresas_routes,
        "lookup_cnpj",
        lambda cnpj: {"cnpj": "11.222.333/0001-81", "razao_social": "ACME"},
    )
    login_as(admin)

    res = client.get("/empresas/cnpj/11222333000181")
    assert res.status_code == 200
    assert res.get_json()["empresa"]["cadastrada"] is True
