"""Mercado Pago REST client used by checkout and the payment webhook."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from capacita.core.settings import settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    def __init__(self, message: str, *, status_code: int = 0, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class PaymentGatewayNotConfigured(PaymentGatewayError):
    pass


class MercadoPagoClient:
    def __init__(
        self,
        access_token: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.access_token = access_token or settings.mercadopago_access_token
        if not self.access_token:
            raise PaymentGatewayNotConfigured("MERCADOPAGO_ACCESS_TOKEN não configurado")
        self.base_url = (base_url or settings.mercadopago_api_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or requests.Session()

    def _request(
        self, method: str, endpoint: str, payload: Optional[Dict] = None
    ) -> requests.Response:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        logger.info("Mercado Pago: %s %s", method, url)
        try:
            return self.session.request(
                method, url, headers=headers, json=payload, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise PaymentGatewayError(f"Falha de comunicação: {exc}") from exc

    def _json(self, response: requests.Response, error_message: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text[:500]}
        if not response.ok:
            logger.error(
                "Mercado Pago HTTP %s: %s", response.status_code, data
            )
            raise PaymentGatewayError(
                error_message, status_code=response.status_code, details=data
            )
        return data

    def test_connection(self) -> bool:
        response = self._request("GET", "/v1/payment_methods")
        if not response.ok:
            logger.error("Teste de conexão Mercado Pago falhou: %s", response.text[:500])
        return response.ok

    def get_payment(self, payment_id: str | int) -> Dict[str, Any]:
        response = self._request("GET", f"/v1/payments/{payment_id}")
        return self._json(response, "Erro ao consultar pagamento")

    def create_preference(
        self,
        *,
        title: str,
        amount: float,
        payer_email: str,
        external_reference: str,
        back_url_base: str,
    ) -> Dict[str, Any]:
        base = back_url_base.rstrip("/")
        preference = {
            "items": [
                {
                    "title": title,
                    "quantity": 1,
                    "unit_price": round(amount, 2),
                    "currency_id": settings.mercadopago_currency,
                }
            ],
            "payer": {"email": payer_email},
            "back_urls": {
                "success": f"{base}/dashboard?payment=success",
                "failure": f"{base}/dashboard?payment=failure",
                "pending": f"{base}/dashboard?payment=pending",
            },
            "auto_return": "approved",
            "external_reference": external_reference,
        }
        if settings.mercadopago_notification_url:
            preference["notification_url"] = settings.mercadopago_notification_url
        response = self._request("POST", "/checkout/preferences", preference)
        return self._json(response, "Erro ao criar pagamento")

    def create_subscription(
        self,
        *,
        reason: str,
        amount: float,
        payer_email: str,
        external_reference: str,
        back_url_base: str,
    ) -> Dict[str, Any]:
        payload = {
            "reason": reason,
            "auto_recurring": {
                "frequency": 1,
                "frequency_type": "months",
                "transaction_amount": round(amount, 2),
                "currency_id": settings.mercadopago_currency,
            },
            "back_url": f"{back_url_base.rstrip('/')}/dashboard",
            "payer_email": payer_email,
            "external_reference": external_reference,
        }
        response = self._request("POST", "/preapproval", payload)
        return self._json(response, "Erro ao criar assinatura")


def build_external_reference(
    empresa_id: str, plano_id: str, annual: Optional[bool] = None
) -> str:
    data: Dict[str, Any] = {"empresa_id": empresa_id, "plano_id": plano_id}
    if annual is not None:
        data["annual"] = bool(annual)
    return json.dumps(data, separators=(",", ":"), sort_keys=True)


def parse_external_reference(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode the reference attached at checkout; None when malformed."""

    try:
        data = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    return data
