"""Aggregate imports so string-based foreign keys resolve on metadata creation."""

from .base import Base  # noqa: F401

from .planos import Planos  # noqa: F401
from .empresas import Empresas  # noqa: F401
from .perfis import Perfis  # noqa: F401
from .treinamentos import Treinamentos  # noqa: F401
from .progresso_treinamentos import ProgressoTreinamentos  # noqa: F401
from .certificados import Certificados  # noqa: F401

from .plano_contratos import PlanoContratos  # noqa: F401
from .pagamentos import Pagamentos  # noqa: F401
from .configuracoes_notificacao import ConfiguracoesNotificacao  # noqa: F401
