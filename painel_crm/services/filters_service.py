"""
Serviço de Filtros.

Responsabilidades:
- Aplicação dos filtros categóricos (núcleo, loja, vendedor, arquiteto)
- Janelas de datas do funil (fechado / aberto)
- Períodos pré-definidos e período anterior de comparação
- Opções dos dropdowns do header
"""

from datetime import date, timedelta
from typing import Optional

from painel_crm.config import DEFAULT_PERIOD_DAYS
from painel_crm.models.crm_models import (
    Budget,
    DateRange,
    Filtros,
    Project,
    ReferenceEntry,
    status_filter_matches,
)
from painel_crm.models.metric_models import FilterOption, FilterOptions

FUNNEL_CLOSED = "closed"
FUNNEL_OPEN = "open"


# ─── Projetos ───

def matches_filters(project: Project, filtros: Filtros) -> bool:
    """Filtros categóricos do projeto. A data é tratada por quem chama."""
    # projeto sem núcleos cadastrados não é excluído pelo filtro de núcleo
    if filtros.nucleo and project.nucleos and filtros.nucleo not in project.nucleos:
        return False
    if filtros.loja and project.loja != filtros.loja:
        return False
    if filtros.vendedor and filtros.vendedor not in project.vendedor_ids:
        return False
    if filtros.arquiteto and project.arquiteto != filtros.arquiteto:
        return False
    return True


def filter_projects(
    projects: list[Project],
    filtros: Filtros,
    date_range: Optional[DateRange] = None,
) -> list[Project]:
    """Projetos criados no período (se informado) que passam nos filtros categóricos."""
    return [
        p for p in projects
        if (date_range is None or date_range.contains(p.created_day))
        and matches_filters(p, filtros)
    ]


# ─── Orçamentos ───

def active_budgets(budgets: list[Budget], include_removed: bool = False) -> list[Budget]:
    """Remove orçamentos com removido=True, salvo pedido explícito."""
    if include_removed:
        return list(budgets)
    return [b for b in budgets if not b.removido]


def in_window(budget: Budget, date_range: DateRange, mode: str = FUNNEL_CLOSED) -> bool:
    """Funil fechado: criado dentro do período. Aberto: criado até o fim do período."""
    day = budget.created_day
    if day is None:
        return False
    if mode == FUNNEL_OPEN:
        return day <= date_range.end_day
    return date_range.contains(day)


def filter_budgets(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    filtros: Filtros,
    date_range: Optional[DateRange] = None,
    mode: str = FUNNEL_CLOSED,
    apply_status: bool = True,
    include_removed: bool = False,
) -> list[Budget]:
    """
    Orçamentos ativos na janela, cujo projeto passa nos filtros categóricos.

    Com filtro categórico ativo, orçamento sem projeto encontrado fica de fora.
    """
    window = date_range or filtros.date_range
    selected = []
    for budget in active_budgets(budgets, include_removed):
        if not in_window(budget, window, mode):
            continue
        project = projects_by_id.get(budget.projeto_id or "")
        if budget_matches(budget, project, filtros, apply_status):
            selected.append(budget)
    return selected


def budget_matches(
    budget: Budget,
    project: Optional[Project],
    filtros: Filtros,
    apply_status: bool = True,
) -> bool:
    """Filtros categóricos via projeto vinculado, mais o filtro de status."""
    if filtros.has_categorical and (project is None or not matches_filters(project, filtros)):
        return False
    if apply_status and not status_filter_matches(filtros.status, budget.status):
        return False
    return True


# ─── Períodos ───

def previous_period(date_range: DateRange) -> DateRange:
    """Período imediatamente anterior, com o mesmo número de dias."""
    prev_end = date_range.start_day - timedelta(days=1)
    prev_start = prev_end - timedelta(days=date_range.days - 1)
    return DateRange(prev_start, prev_end)


PRESETS = ("last7days", "thisMonth", "thisQuarter", "thisYear")


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # dia 31 em mês curto → último dia do mês
    for d in (day.day, 30, 29, 28):
        try:
            return date(year, month, d)
        except ValueError:
            continue
    return date(year, month, 28)


def date_range_for_preset(preset: str, today: date = None) -> DateRange:
    """Período pré-definido do header; desconhecido → últimos 30 dias."""
    today = today or date.today()
    if preset == "last7days":
        start = today - timedelta(days=7)
    elif preset == "thisMonth":
        start = today.replace(day=1)
    elif preset == "thisQuarter":
        # últimos 3 meses a partir de hoje
        start = _months_back(today, 3)
    elif preset == "thisYear":
        start = today.replace(month=1, day=1)
    else:
        start = today - timedelta(days=DEFAULT_PERIOD_DAYS)
    return DateRange(start, today)


# ─── Opções de filtro ───

def _names(entries: list[ReferenceEntry]) -> dict[str, str]:
    return {e.id: e.nome or e.id for e in entries if e.visible}


def build_filter_options(
    projects: list[Project],
    lojas: list[ReferenceEntry] = None,
    vendedores: list[ReferenceEntry] = None,
    arquitetos: list[ReferenceEntry] = None,
) -> FilterOptions:
    """Opções únicas dos dropdowns, extraídas dos projetos e nomeadas pelas listas."""
    loja_names = _names(lojas or [])
    vendedor_names = _names(vendedores or [])
    arquiteto_names = _names(arquitetos or [])

    nucleos: dict[str, FilterOption] = {}
    lojas_opt: dict[str, FilterOption] = {}
    vendedores_opt: dict[str, FilterOption] = {}
    arquitetos_opt: dict[str, FilterOption] = {}

    for project in projects:
        for nucleo in project.nucleos:
            nucleos.setdefault(nucleo, FilterOption(id=nucleo, name=nucleo))

        if project.loja and project.loja not in lojas_opt:
            lojas_opt[project.loja] = FilterOption(
                id=project.loja,
                name=loja_names.get(project.loja, project.loja),
                nucleos=project.nucleos[:1],
            )

        for vid in project.vendedor_ids:
            opt = vendedores_opt.setdefault(
                vid, FilterOption(id=vid, name=vendedor_names.get(vid, vid))
            )
            for nucleo in project.nucleos:
                if nucleo not in opt.nucleos:
                    opt.nucleos.append(nucleo)

        if project.arquiteto and project.arquiteto not in arquitetos_opt:
            arquitetos_opt[project.arquiteto] = FilterOption(
                id=project.arquiteto,
                name=arquiteto_names.get(project.arquiteto, project.arquiteto),
            )

    def _sorted(options: dict[str, FilterOption]) -> list[FilterOption]:
        return sorted(options.values(), key=lambda o: o.name.lower())

    return FilterOptions(
        nucleos=_sorted(nucleos),
        lojas=_sorted(lojas_opt),
        vendedores=_sorted(vendedores_opt),
        arquitetos=_sorted(arquitetos_opt),
    )
