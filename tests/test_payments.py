from datetime import date, timedelta

import pytest

from capacita.models.pagamentos import Pagamentos
from capacita.models.plano_contratos import PlanoContratos
from capacita.models.planos import Planos
from capacita.models.roles import RolesEnum
from capacita.repositories.PagamentosRepository import (
    ApprovedPayment,
    PagamentosRepository,
)
from capacita.routes import pagamentos as pagamentos_routes
from capacita.routes.pagamentos import annual_price
from capacita.services.mercadopago import (
    MercadoPagoClient,
    PaymentGatewayError,
    PaymentGatewayNotConfigured,
    build_external_reference,
    parse_external_reference,
)


class FakeMercadoPago:
    payment: dict = {}
    calls: list = []

    def __init__(self, *args, **kwargs):
        pass

    def test_connection(self):
        return True

    def get_payment(self, payment_id):
        FakeMercadoPago.calls.append(("get_payment", payment_id))
        return dict(FakeMercadoPago.payment, id=payment_id)

    def create_preference(self, **kwargs):
        FakeMercadoPago.calls.append(("create_preference", kwargs))
        return {"id": "pref-1", "init_point": "https://mp.example/checkout/pref-1"}

    def create_subscription(self, **kwargs):
        FakeMercadoPago.calls.append(("create_subscription", kwargs))
        return {"id": "sub-1", "init_point": "https://mp.example/sub/sub-1"}


@pytest.fixture
def fake_gateway(monkeypatch):
    FakeMercadoPago.payment = {}
    FakeMercadoPago.calls = []
    monkeypatch.setattr(pagamentos_routes, "MercadoPagoClient", FakeMercadoPago)
    return FakeMercadoPago


@pytest.fixture
def plano(db_session):
    row = Planos(nome="Profissional", preco=199.9, limite_usuarios=50, limite_treinamentos=100)
    db_session.add(row)
    db_session.commit()
    return row


def test_annual_price_applies_discount():
    assert annual_price(100) == 960.0
    assert annual_price(199.9) == 1919.04


def test_external_reference_roundtrip_and_garbage():
    raw = build_external_reference("e1", "p1", True)
    assert raw == '{"annual":true,"empresa_id":"e1","plano_id":"p1"}'
    assert parse_external_reference(raw) == {
        "annual": True,
        "empresa_id": "e1",
        "plano_id": "p1",
    }
    assert parse_external_reference("not json") is None
    assert parse_external_reference("[1, 2]") is None


def test_client_requires_token():
    with pytest.raises(PaymentGatewayNotConfigured):
        MercadoPagoClient(access_token=None)


def test_client_wraps_http_errors():
    class Response:
        ok = False
        status_code = 401
        text = "unauthorized"

        def json(self):
            return {"message": "invalid token"}

    class Session:
        def request(self, *args, **kwargs):
            return Response()

    client = MercadoPagoClient("token", session=Session())
    with pytest.raises(PaymentGatewayError) as exc:
        client.get_payment(123)
    assert exc.value.status_code == 401
    assert exc.value.details == {"message": "invalid token"}


def test_list_plans_includes_annual_price(client, db_session, plano):
    body = client.get("/planos").get_json()
    listed = {p["id"]: p for p in body["planos"]}
    assert listed[plano.id]["preco_anual"] == annual_price(199.9)


def test_checkout_without_gateway_token(
    client, db_session, make_empresa, make_perfil, login_as
):
    admin = make_perfil(empresa=make_empresa(), role=RolesEnum.Admin)
    headers = login_as(admin)
    res = client.post(
        "/pagamentos/checkout", json={"action": "test-connection"}, headers=headers
    )
    assert res.status_code == 500


def test_checkout_creates_annual_preference(
    client, db_session, make_empresa, make_perfil, login_as, plano, fake_gateway
):
    empresa = make_empresa("Acme")
    admin = make_perfil(empresa=empresa, role=RolesEnum.Admin)
    headers = login_as(admin)
    headers["Origin"] = "https://portal.example"

    res = client.post(
        "/pagamentos/checkout",
        json={"action": "create-payment", "data": {"plano_id": plano.id, "annual": True}},
        headers=headers,
    )
    body = res.get_json()
    assert res.status_code == 200
    assert body["preference_id"] == "pref-1"
    assert body["valor"] == annual_price(plano.preco)

    name, kwargs = fake_gateway.calls[-1]
    assert name == "create_preference"
    assert kwargs["payer_email"] == admin.email
    assert kwargs["back_url_base"] == "https://portal.example"
    assert parse_external_reference(kwargs["external_reference"]) == {
        "annual": True,
        "empresa_id": empresa.id,
        "plano_id": plano.id,
    }


def test_admin_cannot_checkout_for_other_company(
    client, db_session, make_empresa, make_perfil, login_as, plano, fake_gateway
):
    admin = make_perfil(empresa=make_empresa("A"), role=RolesEnum.Admin)
    other = make_empresa("B")
    headers = login_as(admin)
    res = client.post(
        "/pagamentos/checkout",
        json={
            "action": "create-subscription",
            "data": {"plano_id": plano.id, "empresa_id": other.id},
        },
        headers=headers,
    )
    assert res.status_code == 403


def test_webhook_approved_payment_is_idempotent(
    client, db_session, make_empresa, plano, fake_gateway
):
    empresa = make_empresa("Demo", is_demo=True, bloqueada=True, motivo_bloqueio="Trial")
    fake_gateway.payment = {
        "status": "approved",
        "transaction_amount": 1919.04,
        "external_reference": build_external_reference(empresa.id, plano.id, True),
    }
    notification = {"type": "payment", "data": {"id": "987"}}

    for _ in range(2):
        res = client.post("/webhooks/mercadopago", json=notification)
        assert res.status_code == 200
        assert res.get_json() == {"ok": True}

    payments = db_session.query(Pagamentos).filter_by(referencia="987").all()
    assert len(payments) == 1
    assert payments[0].status == "pago"
    assert payments[0].observacoes.endswith("Anual")

    contracts = db_session.query(PlanoContratos).filter_by(empresa_id=empresa.id).all()
    assert len(contracts) == 1
    assert contracts[0].data_fim == date.today() + timedelta(days=365)

    db_session.refresh(empresa)
    assert empresa.bloqueada is False
    assert empresa.is_demo is False
    assert empresa.motivo_bloqueio is None
    assert empresa.plano_id == plano.id


def test_webhook_ignores_other_events_and_rejections(
    client, db_session, make_empresa, plano, fake_gateway
):
    empresa = make_empresa(bloqueada=True)
    assert client.post("/webhooks/mercadopago", json={"type": "plan"}).status_code == 200
    assert fake_gateway.calls == []

    fake_gateway.payment = {
        "status": "rejected",
        "external_reference": build_external_reference(empresa.id, plano.id),
    }
    res = client.post("/webhooks/mercadopago", json={"type": "payment", "data": {"id": "1"}})
    assert res.status_code == 200
    assert db_session.query(Pagamentos).count() == 0


def test_webhook_survives_bad_reference(client, db_session, fake_gateway):
    fake_gateway.payment = {"status": "approved", "external_reference": "lixo"}
    res = client.post("/webhooks/mercadopago", json={"type": "payment", "data": {"id": "2"}})
    assert res.status_code == 200
    assert db_session.query(Pagamentos).count() == 0


def test_monthly_contract_lasts_thirty_days(db_session, make_empresa, plano):
    empresa = make_empresa()
    repo = PagamentosRepository(db_session)
    approved = ApprovedPayment(
        referencia="m-1",
        valor=plano.preco,
        empresa_id=empresa.id,
        plano_id=plano.id,
        annual=False,
        external_reference=build_external_reference(empresa.id, plano.id, False),
    )
    today = date(2026, 1, 31)
    assert repo.apply_approved_payment(approved, today=today) is True

    contract = db_session.query(PlanoContratos).filter_by(empresa_id=empresa.id).one()
    assert contract.data_fim == date(2026, 3, 2)

    missing = ApprovedPayment(
        referencia="m-2",
        valor=1,
        empresa_id=empresa.id,
        plano_id="nao-existe",
        annual=False,
        external_reference="{}",
    )
    assert repo.apply_approved_payment(missing, today=today) is False


def test_replayed_payment_on_later_day_keeps_contract_end(
    db_session, make_empresa, plano
):
    empresa = make_empresa()
    repo = PagamentosRepository(db_session)
    approved = ApprovedPayment(
        referencia="r-1",
        valor=plano.preco,
        empresa_id=empresa.id,
        plano_id=plano.id,
        annual=False,
        external_reference=build_external_reference(empresa.id, plano.id, False),
    )
    assert repo.apply_approved_payment(approved, today=date(2026, 1, 1)) is True
    assert repo.apply_approved_payment(approved, today=date(2026, 1, 11)) is True

    contract = db_session.query(PlanoContratos).filter_by(empresa_id=empresa.id).one()
    assert contract.data_fim == date(2026, 1, 31)
    assert db_session.query(Pagamentos).filter_by(referencia="r-1").count() == 1

    renewal = ApprovedPayment(
        referencia="r-2",
        valor=plano.preco,
        empresa_id=empresa.id,
        plano_id=plano.id,
        annual=False,
        external_reference=approved.external_reference,
    )
    assert repo.apply_approved_payment(renewal, today=date(2026, 1, 31)) is True
    db_session.refresh(contract)
    assert contract.data_fim == date(2026, 3, 2)


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "payment", "data": "123"},
        {"type": "payment", "data": ["123"]},
        {"type": "payment"},
        [{"type": "payment", "data": {"id": "1"}}],
        "payment",
    ],
)
def test_webhook_answers_ok_for_malformed_bodies(
    client, db_session, fake_gateway, payload
):
    res = client.post("/webhooks/mercadopago", json=payload)
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}
    assert fake_gateway.calls == []


def test_webhook_ignores_non_numeric_amount(
    client, db_session, make_empresa, plano, fake_gateway
):
    empresa = make_empresa(bloqueada=True)
    fake_gateway.payment = {
        "status": "approved",
        "transaction_amount": "cem reais",
        "external_reference": build_external_reference(empresa.id, plano.id),
    }
    res = client.post("/webhooks/mercadopago", json={"type": "payment", "data": {"id": "3"}})
    assert res.status_code == 200
    assert db_session.query(Pagamentos).count() == 0
    db_session.refresh(empresa)
    assert empresa.bloqueada is True
