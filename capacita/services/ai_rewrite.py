"""Client for the chat-completions gateway that rewrites course text."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from capacita.core.settings import settings

logger = logging.getLogger(__name__)

PROVIDER_MODELS = {
    "gemini": "google/gemini-2.5-flash",
    "chatgpt": "openai/gpt-5-mini",
    # sem acesso direto ao DeepSeek; usa o modelo padrão
    "deepseek": "google/gemini-2.5-flash",
}

SYSTEM_PROMPT = """Você é um assistente especializado em reescrever textos de treinamentos corporativos.
Sua função é melhorar a clareza, legibilidade e compreensão do texto fornecido.

Regras:
- Mantenha o significado original do texto
- Use linguagem clara e objetiva
- Quebre parágrafos longos em partes menores
- Use bullet points quando apropriado
- Mantenha um tom profissional mas acessível
- Não adicione informações que não estavam no texto original
- Se o texto contiver HTML, preserve as tags HTML básicas (h3, p, strong, em, ul, li)
- Responda APENAS com o texto reescrito, sem comentários adicionais"""


class RewriteError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def model_for(provider: Optional[str]) -> str:
    return PROVIDER_MODELS.get((provider or "").lower(), settings.ai_default_model)


def rewrite_text(
    text: str,
    provider: Optional[str] = None,
    *,
    session: Optional[requests.Session] = None,
) -> str:
    if not text or not text.strip():
        raise RewriteError("Texto não fornecido", 400)
    if not settings.ai_gateway_api_key:
        logger.error("AI_GATEWAY_API_KEY não configurada")
        raise RewriteError("Integração de IA não configurada", 500)

    http = session or requests
    try:
        response = http.post(
            settings.ai_gateway_url,
            headers={
                "Authorization": f"Bearer {settings.ai_gateway_api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": model_for(provider),
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": (
                            "Reescreva o seguinte texto de treinamento de forma "
                            f"clara e fácil de entender:\n\n{text}"
                        ),
                    },
                ],
            },
            timeout=settings.http_timeout_seconds,
        )
    except requests.RequestException as exc:
        logger.error("Falha ao contatar o gateway de IA: %s", exc)
        raise RewriteError("Erro ao processar a solicitação de IA") from exc

    if response.status_code == 429:
        raise RewriteError(
            "Limite de requisições excedido. Tente novamente em alguns minutos.", 429
        )
    if response.status_code == 402:
        raise RewriteError(
            "Créditos de IA esgotados. Entre em contato com o suporte.", 402
        )
    if not response.ok:
        logger.error("Gateway de IA HTTP %s: %s", response.status_code, response.text[:500])
        raise RewriteError("Erro ao processar a solicitação de IA")

    try:
        rewritten = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        rewritten = None
    if not rewritten:
        raise RewriteError("Não foi possível reescrever o texto")
    return rewritten
