"""
Configuração centralizada do painel CRM.
Carrega variáveis de ambiente (.env local) ou st.secrets (Streamlit Cloud).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Carrega .env a partir da raiz do projeto (apenas local)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _get_secret(key: str, default: str = None) -> str | None:
    """Busca config em st.secrets (Cloud) ou os.environ (.env local)."""
    try:
        import streamlit as st
        if hasattr(st, "secrets") and key in st.secrets:
            return st.secrets[key]
    except Exception:
        pass
    return os.getenv(key, default)


# ─── API do CRM ───

CRM_API_BASE_URL = _get_secret(
    "CRM_API_BASE_URL",
    "https://crm.casualmoveis.com.br/version-live/api/1.1",
)
CRM_API_TOKEN = _get_secret("CRM_API_TOKEN")  # opcional
MIN_REQUEST_INTERVAL = 0.1  # 100ms entre requests
MAX_RETRIES = int(_get_secret("CRM_MAX_RETRIES", "3"))
RETRY_BACKOFF = 1.0  # segundos
REQUEST_TIMEOUT = 30  # segundos

PAGE_SIZE = 100
ID_BATCH_SIZE = 50  # limite de payload da constraint "in"

# Coleções consultadas (somente leitura)
COLLECTION_PROJETO = "projeto"
COLLECTION_ORCAMENTO = "orcamento"
COLLECTION_ITEM_ORCAMENTO = "item_orcamento"
COLLECTION_VENDEDOR = "vendedor"
COLLECTION_ARQUITETO = "arquiteto"
COLLECTION_CLIENTE = "cliente"
COLLECTION_LOJA = "loja"

# ─── Cache ───

CACHE_SCHEMA_VERSION = "v2"
CACHE_DIR = Path(_get_secret("CRM_CACHE_DIR", str(PROJECT_ROOT / ".cache")))
QUERY_CACHE_TTL_MINUTES = 30
REFERENCE_CACHE_TTL_MINUTES = 24 * 60
SWEEP_MAX_AGE_MINUTES = 30

# Nomes lógicos dos agregados em cache (prefixos das chaves)
CACHE_PREFIXES = (
    "funnel",
    "margin",
    "performance",
    "top10",
    "filter_options",
    "ref_vendedor",
    "ref_arquiteto",
    "ref_cliente",
    "ref_loja",
)

# ─── Logging ───

LOG_LEVEL = _get_secret("CRM_LOG_LEVEL", "INFO")
LOG_TO_FILE = _get_secret("CRM_LOG_TO_FILE", "false").lower() in ("1", "true", "yes")
LOG_DIR = PROJECT_ROOT / "logs"

# ─── Dashboard ───

TIMEZONE = _get_secret("CRM_TIMEZONE", "America/Sao_Paulo")
DEFAULT_PERIOD_DAYS = 30
TOP_PERFORMERS = 5
TOP_RANKING = 10
TREND_POINTS = 7
