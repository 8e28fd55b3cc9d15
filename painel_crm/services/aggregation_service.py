"""
Orquestração das métricas do painel.

Para cada métrica: chave de cache do filtro → cache válido? → busca em
etapas (orçamentos → projetos → itens) → junção e cálculo → grava no cache.

Falha de rede, de parse ou lote por ID incompleto:
    1. entrada de cache de qualquer idade (stale_cache)
    2. fallback mínimo com o que já foi buscado (fallback)
    3. MetricUnavailableError para a UI mostrar o erro
"""

from typing import Callable, Optional

from painel_crm.api.crm_client import CrmClient
from painel_crm.config import (
    COLLECTION_ARQUITETO,
    COLLECTION_CLIENTE,
    COLLECTION_ITEM_ORCAMENTO,
    COLLECTION_LOJA,
    COLLECTION_PROJETO,
    COLLECTION_VENDEDOR,
    QUERY_CACHE_TTL_MINUTES,
    REFERENCE_CACHE_TTL_MINUTES,
)
from painel_crm.errors import MetricUnavailableError, NetworkError, ParseError, PartialResultError
from painel_crm.models.crm_models import (
    Budget,
    DateRange,
    Filtros,
    LineItem,
    Project,
    ReferenceEntry,
)
from painel_crm.models.metric_models import (
    SOURCE_CACHE,
    SOURCE_FALLBACK,
    SOURCE_NETWORK,
    SOURCE_STALE_CACHE,
    FilterOptions,
    FunnelResult,
    MarginResult,
    MetricResult,
    PerformanceResult,
    Top10Result,
)
from painel_crm.services.filters_service import (
    FUNNEL_CLOSED,
    FUNNEL_OPEN,
    build_filter_options,
    previous_period,
)
from painel_crm.services.funnel_service import compute_funnel, minimal_funnel
from painel_crm.services.margin_service import compute_margin, minimal_margin, select_margin_budgets
from painel_crm.services.performance_service import compute_performance
from painel_crm.services.top10_service import compute_top10
from painel_crm.utils.caching import ResultCache, make_cache_key
from painel_crm.utils.logger import setup_logger

logger = setup_logger(__name__)

FETCH_ERRORS = (NetworkError, ParseError, PartialResultError)

# coleção de referência → método do cliente
REFERENCE_FETCHERS = {
    COLLECTION_VENDEDOR: "get_sellers",
    COLLECTION_ARQUITETO: "get_architects",
    COLLECTION_CLIENTE: "get_clients",
    COLLECTION_LOJA: "get_stores",
}


class DashboardAggregator:
    """Ponto único de acesso da UI às métricas."""

    def __init__(self, client: CrmClient, cache: ResultCache):
        self.client = client
        self.cache = cache

    # ─── Cache + fallback ───

    @staticmethod
    def _decode(entry, decode: Callable):
        try:
            return decode(entry.payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Payload de cache incompatível key=%s: %s", entry.key, e)
            return None

    def _cached_metric(
        self,
        metric: str,
        key: str,
        compute: Callable[[dict], object],
        decode: Callable[[dict], object],
        fallback: Optional[Callable[[dict], object]] = None,
        ttl_minutes: float = QUERY_CACHE_TTL_MINUTES,
        force_refresh: bool = False,
    ) -> MetricResult:
        entry = self.cache.get(key)
        if not force_refresh and self.cache.is_fresh(entry, ttl_minutes):
            data = self._decode(entry, decode)
            if data is not None:
                logger.debug("Cache hit key=%s idade=%.1fmin", key, entry.age_minutes)
                return MetricResult(data=data, source=SOURCE_CACHE, cache_key=key)

        partial: dict = {}
        try:
            data = compute(partial)
        except FETCH_ERRORS as e:
            logger.error("Falha ao calcular %s key=%s: %s", metric, key, e)
            if entry is not None:
                stale = self._decode(entry, decode)
                if stale is not None:
                    logger.warning(
                        "Usando cache expirado key=%s idade=%.1fmin", key, entry.age_minutes
                    )
                    return MetricResult(
                        data=stale, source=SOURCE_STALE_CACHE, cache_key=key, error=str(e)
                    )
            if fallback is not None:
                minimal = fallback(partial)
                if minimal is not None:
                    logger.warning("Usando fallback mínimo para %s", metric)
                    return MetricResult(
                        data=minimal, source=SOURCE_FALLBACK, cache_key=key, error=str(e)
                    )
            raise MetricUnavailableError(metric, cause=e) from e

        self.cache.set(key, data.to_dict(), ttl_minutes=ttl_minutes, force=force_refresh)
        return MetricResult(data=data, source=SOURCE_NETWORK, cache_key=key)

    # ─── Etapas de busca ───

    def _load_budgets(self, start, end, partial: dict) -> list[Budget]:
        budgets = [Budget.from_api(r) for r in self.client.get_budgets(start, end)]
        partial["budgets"] = budgets
        return budgets

    @staticmethod
    def _require_complete(records: list[dict], collection: str) -> list[dict]:
        """Lote ignorado vira erro: métrica com joins faltando não vai para o cache."""
        failed = getattr(records, "failed_ids", None)
        if failed:
            raise PartialResultError(collection, len(failed))
        return records

    def _load_projects(self, budgets: list[Budget], partial: dict) -> dict[str, Project]:
        ids = [b.projeto_id for b in budgets if b.projeto_id and not b.removido]
        raw = self._require_complete(self.client.get_projects_by_ids(ids), COLLECTION_PROJETO)
        projects_by_id = {p.id: p for p in (Project.from_api(r) for r in raw)}
        partial["projects_by_id"] = projects_by_id
        return projects_by_id

    def _load_items(self, budgets: list[Budget], partial: dict) -> list[LineItem]:
        ids = [i for b in budgets for i in b.item_ids]
        raw = self._require_complete(
            self.client.get_line_items_by_ids(ids), COLLECTION_ITEM_ORCAMENTO
        )
        items = [LineItem.from_api(r) for r in raw]
        partial["items"] = items
        return items

    @staticmethod
    def _fetch_start(filtros: Filtros, compare_previous: bool):
        if compare_previous:
            return previous_period(filtros.date_range).start_day
        return filtros.date_range.start_day

    # ─── Listas de referência ───

    def reference_list(self, collection: str, force_refresh: bool = False) -> list[ReferenceEntry]:
        """
        Lista de referência (vendedores, arquitetos, clientes, lojas), cache de 24h.

        Em falha usa o cache de qualquer idade; sem cache, propaga o erro.
        """
        if collection not in REFERENCE_FETCHERS:
            raise ValueError(f"Coleção de referência desconhecida: {collection}")
        key = make_cache_key(f"ref_{collection}")
        entry = self.cache.get(key)

        if not force_refresh and self.cache.is_fresh(entry, REFERENCE_CACHE_TTL_MINUTES):
            raw = entry.payload
        else:
            try:
                raw = getattr(self.client, REFERENCE_FETCHERS[collection])()
            except FETCH_ERRORS as e:
                if entry is None:
                    raise
                logger.warning("Lista %s indisponível, usando cache expirado: %s", collection, e)
                raw = entry.payload
            else:
                self.cache.set(
                    key, raw, ttl_minutes=REFERENCE_CACHE_TTL_MINUTES, force=force_refresh
                )

        if not isinstance(raw, list):
            return []
        return [ReferenceEntry.from_api(r, collection) for r in raw if isinstance(r, dict)]

    def refresh_reference(self, collection: str) -> list[ReferenceEntry]:
        return self.reference_list(collection, force_refresh=True)

    def _names(self, collection: str) -> dict[str, str]:
        """ID → nome, vazio se a lista não puder ser carregada."""
        return {e.id: e.nome for e in self._entries_or_empty(collection) if e.nome}

    # ─── Métricas ───

    def funnel(
        self,
        filtros: Filtros,
        mode: str = FUNNEL_CLOSED,
        compare_previous: bool = False,
        force_refresh: bool = False,
    ) -> MetricResult:
        key = make_cache_key("funnel", filtros, mode=mode, compare=compare_previous)

        def compute(partial: dict) -> FunnelResult:
            start = None if mode == FUNNEL_OPEN else self._fetch_start(filtros, compare_previous)
            budgets = self._load_budgets(start, filtros.date_range.end_day, partial)
            projects_by_id = self._load_projects(budgets, partial) if filtros.has_categorical else {}
            return compute_funnel(budgets, projects_by_id, filtros, mode, compare_previous)

        def fallback(partial: dict) -> Optional[FunnelResult]:
            if "budgets" not in partial:
                return None
            return minimal_funnel(partial["budgets"], filtros, mode)

        return self._cached_metric(
            "funnel", key, compute, FunnelResult.from_dict, fallback, force_refresh=force_refresh
        )

    def margin(
        self,
        filtros: Filtros,
        compare_previous: bool = True,
        force_refresh: bool = False,
    ) -> MetricResult:
        key = make_cache_key("margin", filtros, compare=compare_previous)

        def compute(partial: dict) -> MarginResult:
            start = self._fetch_start(filtros, compare_previous)
            budgets = self._load_budgets(start, filtros.date_range.end_day, partial)
            projects_by_id = self._load_projects(budgets, partial)

            eligible = select_margin_budgets(budgets, projects_by_id, filtros)
            if compare_previous:
                eligible += select_margin_budgets(
                    budgets, projects_by_id, filtros, date_range=previous_period(filtros.date_range)
                )
            items = self._load_items(eligible, partial)
            return compute_margin(
                budgets, projects_by_id, items, filtros,
                loja_names=self._names(COLLECTION_LOJA),
                compare_previous=compare_previous,
            )

        def fallback(partial: dict) -> Optional[MarginResult]:
            if "budgets" not in partial:
                return None
            return minimal_margin(partial["budgets"], filtros)

        return self._cached_metric(
            "margin", key, compute, MarginResult.from_dict, fallback, force_refresh=force_refresh
        )

    def performance(self, filtros: Filtros, force_refresh: bool = False) -> MetricResult:
        """
        Rankings de vendedores e arquitetos.

        Só entra no ranking quem tem nome visível, então as listas de
        vendedores e arquitetos são obrigatórias e carregadas antes dos
        orçamentos. Sem elas (nem cache), cache expirado ou indisponível.
        """
        key = make_cache_key("performance", filtros)

        def compute(partial: dict) -> PerformanceResult:
            vendedores = self.reference_list(COLLECTION_VENDEDOR)
            arquitetos = self.reference_list(COLLECTION_ARQUITETO)
            start, end = filtros.date_range.start_day, filtros.date_range.end_day
            budgets = self._load_budgets(start, end, partial)
            projects_by_id = self._load_projects(budgets, partial)
            for raw in self.client.get_projects(start, end):
                project = Project.from_api(raw)
                projects_by_id.setdefault(project.id, project)
            return compute_performance(
                budgets, list(projects_by_id.values()), filtros, vendedores, arquitetos
            )

        return self._cached_metric(
            "performance", key, compute, PerformanceResult.from_dict, force_refresh=force_refresh
        )

    def top10(self, filtros: Filtros, force_refresh: bool = False) -> MetricResult:
        key = make_cache_key("top10", filtros)

        def compute(partial: dict) -> Top10Result:
            start, end = filtros.date_range.start_day, filtros.date_range.end_day
            budgets = self._load_budgets(start, end, partial)
            projects_by_id = self._load_projects(budgets, partial)
            items = self._load_items([b for b in budgets if not b.removido], partial)
            clientes = self._entries_or_empty(COLLECTION_CLIENTE)
            return compute_top10(budgets, projects_by_id, items, filtros, clientes)

        return self._cached_metric(
            "top10", key, compute, Top10Result.from_dict, force_refresh=force_refresh
        )

    def filter_options(self, date_range: DateRange, force_refresh: bool = False) -> MetricResult:
        """Opções dos dropdowns a partir dos projetos criados no período."""
        key = make_cache_key("filter_options", Filtros(date_range=date_range))

        def compute(partial: dict) -> FilterOptions:
            raw = self.client.get_projects(date_range.start_day, date_range.end_day)
            projects = [Project.from_api(r) for r in raw]
            return build_filter_options(
                projects,
                lojas=self._entries_or_empty(COLLECTION_LOJA),
                vendedores=self._entries_or_empty(COLLECTION_VENDEDOR),
                arquitetos=self._entries_or_empty(COLLECTION_ARQUITETO),
            )

        return self._cached_metric(
            "filter_options", key, compute, FilterOptions.from_dict, force_refresh=force_refresh
        )

    def _entries_or_empty(self, collection: str) -> list[ReferenceEntry]:
        """Lista usada só como rótulo (clientes, lojas, opções do header): falha vira vazio."""
        try:
            return self.reference_list(collection)
        except FETCH_ERRORS as e:
            logger.warning("Lista %s indisponível: %s", collection, e)
            return []
