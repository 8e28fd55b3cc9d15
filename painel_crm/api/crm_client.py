"""
Cliente HTTP para a API de dados do CRM (endpoints /obj/<coleção>).

Responsabilidades:
- Bearer token opcional
- Rate limiting (100ms entre requests)
- Retry com backoff exponencial
- Paginação por cursor
- Busca em lotes por lista de IDs
"""

import json
import time
from dataclasses import dataclass
from datetime import date
from typing import Any

import requests

from painel_crm.config import (
    COLLECTION_ARQUITETO,
    COLLECTION_CLIENTE,
    COLLECTION_ITEM_ORCAMENTO,
    COLLECTION_LOJA,
    COLLECTION_ORCAMENTO,
    COLLECTION_PROJETO,
    COLLECTION_VENDEDOR,
    CRM_API_BASE_URL,
    CRM_API_TOKEN,
    ID_BATCH_SIZE,
    MAX_RETRIES,
    MIN_REQUEST_INTERVAL,
    PAGE_SIZE,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF,
)
from painel_crm.errors import NetworkError, ParseError
from painel_crm.models.crm_models import day_end_utc, day_start_utc
from painel_crm.utils.logger import setup_logger

logger = setup_logger(__name__)

CONSTRAINT_TYPES = ("equals", "greater than", "less than", "contains", "in")


@dataclass(frozen=True)
class Constraint:
    """Restrição de busca da API: {key, constraint_type, value}."""
    key: str
    constraint_type: str
    value: Any

    def __post_init__(self):
        if self.constraint_type not in CONSTRAINT_TYPES:
            raise ValueError(f"constraint_type inválido: {self.constraint_type}")

    def to_dict(self) -> dict:
        return {"key": self.key, "constraint_type": self.constraint_type, "value": self.value}


def _iso_utc(dt) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def created_between(start: date | None, end: date | None) -> list[Constraint]:
    """Constraints de 'Created Date' para um intervalo de dias (limites inclusivos)."""
    constraints = []
    if start is not None:
        constraints.append(Constraint("Created Date", "greater than", _iso_utc(day_start_utc(start))))
    if end is not None:
        constraints.append(Constraint("Created Date", "less than", _iso_utc(day_end_utc(end))))
    return constraints


class BatchResults(list):
    """Registros de uma busca em lotes; failed_ids guarda os IDs dos lotes que falharam."""

    def __init__(self, records=(), failed_ids=None):
        super().__init__(records)
        self.failed_ids: list[str] = list(failed_ids or [])

    @property
    def complete(self) -> bool:
        return not self.failed_ids


class CrmClient:
    """Cliente de baixo nível para a API REST do CRM."""

    def __init__(
        self,
        base_url: str = None,
        token: str = None,
        session: requests.Session = None,
        max_retries: int = MAX_RETRIES,
        retry_backoff: float = RETRY_BACKOFF,
        min_interval: float = MIN_REQUEST_INTERVAL,
    ):
        self.base_url = (base_url or CRM_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else CRM_API_TOKEN
        self.session = session or requests.Session()
        self.max_retries = max(max_retries, 1)
        self.retry_backoff = retry_backoff
        self.min_interval = min_interval
        self._last_request_time = 0.0

    # ─── HTTP primitivos ───

    def _get_headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _throttle(self):
        elapsed = time.time() - self._last_request_time
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self._last_request_time = time.time()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        last_error = None
        for attempt in range(self.max_retries):
            self._throttle()
            try:
                resp = self.session.request(
                    method, url, headers=self._get_headers(),
                    timeout=REQUEST_TIMEOUT, **kwargs
                )
                resp.raise_for_status()
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else 0
                # 429 / 5xx → retry com backoff
                if status in (429, 500, 502, 503, 504):
                    last_error = NetworkError(str(e), status_code=status, url=url)
                    logger.warning(
                        "HTTP %s em %s (tentativa %d/%d)", status, path, attempt + 1, self.max_retries
                    )
                    time.sleep(self.retry_backoff * (2 ** attempt))
                    continue
                raise NetworkError(str(e), status_code=status, url=url) from e
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_error = NetworkError(str(e), url=url)
                logger.warning(
                    "Falha de conexão em %s (tentativa %d/%d): %s",
                    path, attempt + 1, self.max_retries, e,
                )
                time.sleep(self.retry_backoff * (2 ** attempt))
                continue

            try:
                return resp.json()
            except ValueError as e:
                raise ParseError(f"JSON inválido em {path}: {e}", source=url) from e

        raise last_error

    def get(self, path: str, params: dict = None) -> dict:
        return self._request("GET", path, params=params)

    # ─── Paginação ───

    def fetch_all(
        self,
        collection: str,
        constraints: list[Constraint] = None,
        page_size: int = PAGE_SIZE,
    ) -> list[dict]:
        """
        Busca todas as páginas de uma coleção.

        Segue o cursor enquanto remaining > 0 e a página não vier vazia.
        Qualquer página com falha aborta a busca inteira (NetworkError/ParseError).
        """
        path = f"/obj/{collection}"
        params: dict = {"limit": page_size}
        if constraints:
            params["constraints"] = json.dumps([c.to_dict() for c in constraints])

        all_items: list[dict] = []
        cursor = 0
        while True:
            params["cursor"] = cursor
            logger.debug(
                "GET %s cursor=%d limit=%d constraints=%s",
                collection, cursor, page_size, params.get("constraints", "[]"),
            )
            body = self.get(path, params=dict(params))

            page = body.get("response") if isinstance(body, dict) else None
            if not isinstance(page, dict) or not isinstance(page.get("results"), list):
                raise ParseError(f"Envelope inesperado em {collection}", source=path)

            results = page["results"]
            try:
                remaining = int(page.get("remaining", 0) or 0)
                page_cursor = int(page.get("cursor", cursor) or 0)
            except (TypeError, ValueError) as e:
                raise ParseError(f"Cursor inválido em {collection}: {e}", source=path) from e

            all_items.extend(results)
            logger.debug(
                "Resposta %s cursor=%d results=%d remaining=%d total=%d",
                collection, page_cursor, len(results), remaining, len(all_items),
            )

            if remaining <= 0 or not results:
                break
            cursor = page_cursor + len(results)

        logger.info("Coleção %s: %d registros", collection, len(all_items))
        return all_items

    def fetch_by_ids(
        self,
        collection: str,
        ids: list[str],
        batch_size: int = ID_BATCH_SIZE,
    ) -> BatchResults:
        """
        Busca registros por lista de IDs em lotes com constraint 'in'.

        Lote com falha é registrado e ignorado: o resultado pode ser parcial.
        Os IDs dos lotes ignorados ficam em `failed_ids`; quem não pode
        aceitar dado parcial confere `complete`.
        """
        unique_ids = list(dict.fromkeys(i for i in ids if i))
        results = BatchResults()
        for start in range(0, len(unique_ids), batch_size):
            batch = unique_ids[start:start + batch_size]
            try:
                results.extend(self.fetch_all(collection, [Constraint("_id", "in", batch)]))
            except (NetworkError, ParseError) as e:
                logger.warning(
                    "Lote ignorado collection=%s offset=%d tamanho=%d: %s",
                    collection, start, len(batch), e,
                )
                results.failed_ids.extend(batch)
        return results

    # ─── Coleções (alto nível) ───

    def get_projects(self, start: date = None, end: date = None) -> list[dict]:
        """Projetos, opcionalmente limitados por data de criação."""
        return self.fetch_all(COLLECTION_PROJETO, created_between(start, end))

    def get_projects_by_ids(self, ids: list[str]) -> BatchResults:
        return self.fetch_by_ids(COLLECTION_PROJETO, ids)

    def get_budgets(self, start: date = None, end: date = None) -> list[dict]:
        """Orçamentos criados no intervalo (start=None → desde o início)."""
        return self.fetch_all(COLLECTION_ORCAMENTO, created_between(start, end))

    def get_line_items_by_ids(self, ids: list[str]) -> BatchResults:
        return self.fetch_by_ids(COLLECTION_ITEM_ORCAMENTO, ids)

    def get_sellers(self) -> list[dict]:
        return self.fetch_all(COLLECTION_VENDEDOR)

    def get_architects(self) -> list[dict]:
        return self.fetch_all(COLLECTION_ARQUITETO)

    def get_clients(self) -> list[dict]:
        return self.fetch_all(COLLECTION_CLIENTE)

    def get_stores(self) -> list[dict]:
        return self.fetch_all(COLLECTION_LOJA)
