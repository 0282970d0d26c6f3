from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

import requests

from capacita.core.settings import settings

logger = logging.getLogger(__name__)

BRASIL_API_URL = "https://brasilapi.com.br/api/cnpj/v1/{cnpj}"

_FIRST_WEIGHTS = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_SECOND_WEIGHTS = (6,) + _FIRST_WEIGHTS


class CnpjLookupError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def clean_cnpj(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def format_cnpj(value: str) -> str:
    """XX.XXX.XXX/XXXX-XX; input returned untouched when it isn't 14 digits."""

    digits = clean_cnpj(value)
    if len(digits) != 14:
        return value
    return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"


def _check_digit(digits: str, weights: tuple[int, ...]) -> int:
    total = sum(int(d) * w for d, w in zip(digits, weights))
    rest = total % 11
    return 0 if rest < 2 else 11 - rest


def is_valid_cnpj(value: Optional[str]) -> bool:
    digits = clean_cnpj(value)
    if len(digits) != 14 or len(set(digits)) == 1:
        return False
    if _check_digit(digits[:12], _FIRST_WEIGHTS) != int(digits[12]):
        return False
    return _check_digit(digits[:13], _SECOND_WEIGHTS) == int(digits[13])


def lookup_cnpj(value: str, *, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """Company registry data from BrasilAPI, normalised to our field names."""

    digits = clean_cnpj(value)
    if not is_valid_cnpj(digits):
        raise CnpjLookupError("CNPJ inválido", 400)

    http = session or requests
    try:
        response = http.get(
            BRASIL_API_URL.format(cnpj=digits), timeout=settings.http_timeout_seconds
        )
    except requests.RequestException as exc:
        logger.error("Falha ao consultar CNPJ %s: %s", digits, exc)
        raise CnpjLookupError("Erro ao consultar CNPJ") from exc

    if response.status_code == 404:
        raise CnpjLookupError("CNPJ não encontrado na base da Receita Federal", 404)
    if not response.ok:
        logger.error("BrasilAPI HTTP %s para CNPJ %s", response.status_code, digits)
        raise CnpjLookupError("Erro ao consultar CNPJ")

    data = response.json()
    razao_social = data.get("razao_social") or ""
    return {
        "cnpj": format_cnpj(digits),
        "razao_social": razao_social,
        "nome_fantasia": data.get("nome_fantasia") or razao_social,
        "situacao": data.get("descricao_situacao_cadastral") or "",
        "data_abertura": data.get("data_inicio_atividade") or "",
        "atividade_principal": data.get("cnae_fiscal_descricao") or "",
        "municipio": data.get("municipio") or "",
        "uf": data.get("uf") or "",
        "cep": data.get("cep") or "",
        "email": data.get("email") or "",
        "telefone": data.get("ddd_telefone_1") or "",
    }
