from __future__ import annotations

import logging
from typing import Literal, Optional

from flask import Blueprint, abort, jsonify, request
from pydantic import BaseModel, EmailStr, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from capacita.core.db import get_db
from capacita.core.settings import settings
from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum
from capacita.repositories.EmpresasRepository import EmpresasRepository
from capacita.repositories.PagamentosRepository import (
    ApprovedPayment,
    PagamentosRepository,
)
from capacita.routes import format_validation_error, validate_payload
from capacita.services.mercadopago import (
    MercadoPagoClient,
    PaymentGatewayError,
    PaymentGatewayNotConfigured,
    build_external_reference,
    parse_external_reference,
)
from capacita.services.security import FORBID, enforce_csrf, require_roles

logger = logging.getLogger(__name__)

bp = Blueprint("pagamentos", __name__)


class CheckoutData(BaseModel):
    plano_id: Optional[str] = None
    empresa_id: Optional[str] = None
    email: Optional[EmailStr] = None
    empresa_nome: Optional[str] = None
    annual: bool = False


class CheckoutIn(BaseModel):
    action: Literal["test-connection", "create-payment", "create-subscription"]
    data: CheckoutData = Field(default_factory=CheckoutData)


def annual_price(monthly: float) -> float:
    return round(monthly * 12 * settings.annual_discount_factor, 2)


def _back_url_base() -> str:
    return request.headers.get("Origin") or settings.app_base_url or settings.API_ORIGIN


def _checkout_context(user: Perfis, data: CheckoutData):
    empresa_id = data.empresa_id or user.empresa_id
    if not data.plano_id or not empresa_id:
        abort(400, description="Plano e empresa são obrigatórios")
    if not user.is_master and empresa_id != user.empresa_id:
        raise FORBID

    db = get_db()
    plano = PagamentosRepository(db).get_plan(data.plano_id)
    if plano is None:
        abort(404, description="Plano não encontrado")
    empresa = EmpresasRepository(db).get(empresa_id)
    if empresa is None:
        abort(404, description="Empresa não encontrada")
    nome = data.empresa_nome or empresa.nome_fantasia or empresa.nome
    return plano, empresa_id, nome, data.email or user.email


@bp.get("/planos")
def list_plans():
    plans = PagamentosRepository(get_db()).list_plans()
    return jsonify(
        {
            "planos": [
                {
                    "id": p.id,
                    "nome": p.nome,
                    "descricao": p.descricao,
                    "preco": p.preco,
                    "preco_anual": annual_price(p.preco),
                    "limite_usuarios": p.limite_usuarios,
                    "limite_treinamentos": p.limite_treinamentos,
                    "limite_armazenamento_gb": p.limite_armazenamento_gb,
                }
                for p in plans
            ]
        }
    )


@bp.post("/pagamentos/checkout")
def checkout():
    user = require_roles(*RolesEnum.managers())
    enforce_csrf()
    try:
        payload: CheckoutIn = validate_payload(CheckoutIn)
    except ValidationError as exc:
        return jsonify({"detail": format_validation_error(exc)}), 422

    try:
        client = MercadoPagoClient()
    except PaymentGatewayNotConfigured:
        logger.error("MERCADOPAGO_ACCESS_TOKEN não configurado")
        return jsonify({"detail": "Mercado Pago não configurado"}), 500

    try:
        if payload.action == "test-connection":
            if client.test_connection():
                return jsonify({"success": True, "message": "Conexão bem-sucedida"})
            return jsonify({"success": False, "detail": "Credenciais inválidas"}), 400

        plano, empresa_id, empresa_nome, email = _checkout_context(user, payload.data)

        if payload.action == "create-subscription":
            result = client.create_subscription(
                reason=f"Assinatura {plano.nome} - {empresa_nome}",
                amount=plano.preco,
                payer_email=email,
                external_reference=build_external_reference(empresa_id, plano.id),
                back_url_base=_back_url_base(),
            )
            return jsonify(
                {
                    "success": True,
                    "init_point": result.get("init_point"),
                    "subscription_id": result.get("id"),
                }
            )

        annual = payload.data.annual
        amount = annual_price(plano.preco) if annual else plano.preco
        result = client.create_preference(
            title=f"{plano.nome} - {empresa_nome}",
            amount=amount,
            payer_email=email,
            external_reference=build_external_reference(empresa_id, plano.id, annual),
            back_url_base=_back_url_base(),
        )
        return jsonify(
            {
                "success": True,
                "init_point": result.get("init_point"),
                "preference_id": result.get("id"),
                "valor": amount,
            }
        )
    except PaymentGatewayError as exc:
        return jsonify({"detail": str(exc)}), 400


def _approved_from(payment: dict) -> Optional[ApprovedPayment]:
    raw_reference = payment.get("external_reference")
    reference = parse_external_reference(raw_reference)
    if reference is None:
        logger.error("external_reference inválido: %s", raw_reference)
        return None
    empresa_id = reference.get("empresa_id")
    plano_id = reference.get("plano_id")
    if not empresa_id or not plano_id:
        logger.warning("external_reference sem empresa/plano: %s", raw_reference)
        return None
    try:
        valor = float(payment.get("transaction_amount") or 0)
    except (TypeError, ValueError):
        logger.error(
            "transaction_amount inválido no pagamento %s: %r",
            payment.get("id"),
            payment.get("transaction_amount"),
        )
        return None
    return ApprovedPayment(
        referencia=str(payment.get("id")),
        valor=valor,
        empresa_id=str(empresa_id),
        plano_id=str(plano_id),
        annual=bool(reference.get("annual")),
        external_reference=raw_reference,
    )


@bp.post("/webhooks/mercadopago")
def mercadopago_webhook():
    """Always answers 200 so the gateway does not retry; failures are logged."""

    body = request.get_json(silent=True) or {}
    logger.info("Webhook Mercado Pago recebido: %s", body)
    if not isinstance(body, dict):
        logger.warning("Webhook Mercado Pago com corpo inválido")
        return jsonify({"ok": True})
    if body.get("type") != "payment":
        return jsonify({"ok": True})

    data = body.get("data")
    if not isinstance(data, dict):
        logger.warning("Webhook de pagamento com data inválido: %r", data)
        return jsonify({"ok": True})
    payment_id = data.get("id")
    if not payment_id:
        logger.warning("Webhook de pagamento sem data.id")
        return jsonify({"ok": True})

    try:
        payment = MercadoPagoClient().get_payment(payment_id)
    except PaymentGatewayError as exc:
        logger.error("Falha ao consultar pagamento %s: %s", payment_id, exc)
        return jsonify({"ok": True})

    if not isinstance(payment, dict):
        logger.error("Resposta inesperada ao consultar pagamento %s", payment_id)
        return jsonify({"ok": True})
    status = payment.get("status")
    if status in ("rejected", "cancelled"):
        logger.info("Pagamento %s foi %s", payment_id, status)
        return jsonify({"ok": True})
    if status != "approved":
        return jsonify({"ok": True})

    approved = _approved_from(payment)
    if approved is None:
        return jsonify({"ok": True})

    db = get_db()
    try:
        PagamentosRepository(db).apply_approved_payment(approved)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Erro ao registrar pagamento %s", approved.referencia)
    return jsonify({"ok": True})
