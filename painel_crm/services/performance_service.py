"""
Serviço de Performance Comercial.

- Vendedores: ranking por receita dos orçamentos enviados e não reprovados
- Arquitetos: ranking por quantidade de projetos criados no período
- Série de tendência: soma real por fatia de tempo do período
"""

from datetime import date
from typing import Optional

from painel_crm.config import TOP_PERFORMERS, TREND_POINTS
from painel_crm.models.crm_models import Budget, DateRange, Filtros, Project, ReferenceEntry
from painel_crm.models.metric_models import PerformanceItem, PerformanceResult
from painel_crm.services.filters_service import filter_budgets, filter_projects
from painel_crm.services.margin_service import MARGIN_STATUSES


def visible_names(entries: list[ReferenceEntry]) -> dict[str, str]:
    """ID → nome das entradas ativas e não removidas."""
    return {e.id: e.nome for e in entries if e.visible and e.nome}


def bucket_index(day: Optional[date], date_range: DateRange, points: int = TREND_POINTS) -> Optional[int]:
    """Fatia (0..points-1) do período onde o dia cai; None fora do período."""
    if day is None or not date_range.contains(day):
        return None
    offset = (day - date_range.start_day).days
    return min(offset * points // date_range.days, points - 1)


def _rank(
    totals: dict[str, float],
    trends: dict[str, list[float]],
    names: dict[str, str],
    limit: int,
) -> list[PerformanceItem]:
    items = [
        PerformanceItem(id=pid, name=names[pid], value=value, trend=trends[pid])
        for pid, value in totals.items()
        if pid in names
    ]
    items.sort(key=lambda i: i.value, reverse=True)
    return items[:limit]


def rank_sellers(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    filtros: Filtros,
    vendedores: list[ReferenceEntry],
    limit: int = TOP_PERFORMERS,
    points: int = TREND_POINTS,
) -> list[PerformanceItem]:
    """
    Receita dos orçamentos enviados e não reprovados (mesmo recorte da margem).

    Cada vendedor do projeto recebe a receita integral do orçamento.
    """
    totals: dict[str, float] = {}
    trends: dict[str, list[float]] = {}
    for budget in filter_budgets(budgets, projects_by_id, filtros):
        if budget.status not in MARGIN_STATUSES:
            continue
        project = projects_by_id.get(budget.projeto_id or "")
        if project is None:
            continue
        idx = bucket_index(budget.created_day, filtros.date_range, points)
        for vid in project.vendedor_ids:
            totals[vid] = totals.get(vid, 0.0) + budget.revenue
            series = trends.setdefault(vid, [0.0] * points)
            if idx is not None:
                series[idx] += budget.revenue
    return _rank(totals, trends, visible_names(vendedores), limit)


def rank_architects(
    projects: list[Project],
    filtros: Filtros,
    arquitetos: list[ReferenceEntry],
    limit: int = TOP_PERFORMERS,
    points: int = TREND_POINTS,
) -> list[PerformanceItem]:
    """Projetos criados no período, contados por arquiteto."""
    totals: dict[str, float] = {}
    trends: dict[str, list[float]] = {}
    seen = set()
    for project in filter_projects(projects, filtros, filtros.date_range):
        if not project.arquiteto or project.id in seen:
            continue
        seen.add(project.id)
        totals[project.arquiteto] = totals.get(project.arquiteto, 0.0) + 1
        series = trends.setdefault(project.arquiteto, [0.0] * points)
        idx = bucket_index(project.created_day, filtros.date_range, points)
        if idx is not None:
            series[idx] += 1
    return _rank(totals, trends, visible_names(arquitetos), limit)


def compute_performance(
    budgets: list[Budget],
    projects: list[Project],
    filtros: Filtros,
    vendedores: list[ReferenceEntry],
    arquitetos: list[ReferenceEntry],
) -> PerformanceResult:
    projects_by_id = {p.id: p for p in projects}
    return PerformanceResult(
        vendedores=rank_sellers(budgets, projects_by_id, filtros, vendedores),
        arquitetos=rank_architects(projects, filtros, arquitetos),
    )
