"""
Serviço de Margem e Rentabilidade.

Por orçamento:
    receita = valor líquido de produtos (aliases legados)
    custo   = Σ custo_total dos itens do orçamento
    lucro   = receita − custo
    margem  = lucro / receita × 100  (0 se receita ≤ 0)

Agrupamentos (núcleo, loja) somam lucro e receita e recalculam a margem
ponderada Σlucro / Σreceita; nunca a média das margens individuais.
"""

from painel_crm.models.crm_models import Budget, BudgetStatus, Filtros, LineItem, Project
from painel_crm.models.metric_models import MarginGroup, MarginMetrics, MarginResult
from painel_crm.services.filters_service import active_budgets, filter_budgets, previous_period
from painel_crm.utils.formatting import safe_ratio

NO_NUCLEO = "Sem núcleo"
NO_LOJA = "Sem loja"

# Status considerados na rentabilidade: enviados, exceto reprovados
MARGIN_STATUSES = (BudgetStatus.IN_APPROVAL, BudgetStatus.APPROVED, BudgetStatus.RELEASED)


def index_items(items: list[LineItem]) -> tuple[dict[str, LineItem], dict[str, list[LineItem]]]:
    """Mapas id → item e orçamento → itens."""
    by_id = {}
    by_budget: dict[str, list[LineItem]] = {}
    for item in items:
        by_id[item.id] = item
        if item.orcamento_id:
            by_budget.setdefault(item.orcamento_id, []).append(item)
    return by_id, by_budget


def budget_items(
    budget: Budget,
    items_by_id: dict[str, LineItem],
    items_by_budget: dict[str, list[LineItem]],
) -> list[LineItem]:
    """Itens do orçamento pela lista de IDs; sem lista, pelo vínculo do item."""
    if budget.item_ids:
        return [items_by_id[i] for i in budget.item_ids if i in items_by_id]
    return items_by_budget.get(budget.id, [])


def budget_cost(budget: Budget, items_by_id, items_by_budget) -> float:
    return sum(i.custo_total for i in budget_items(budget, items_by_id, items_by_budget))


def margin_metrics(lucro: float, receita: float) -> MarginMetrics:
    margem = safe_ratio(lucro, receita) if receita > 0 else 0.0
    return MarginMetrics(lucro=lucro, receita=receita, margem=margem)


def calculate_margin_metrics(
    budgets: list[Budget],
    items_by_id: dict[str, LineItem],
    items_by_budget: dict[str, list[LineItem]],
) -> MarginMetrics:
    """Lucro, receita e margem ponderada de um conjunto de orçamentos."""
    receita = 0.0
    lucro = 0.0
    for budget in active_budgets(budgets):
        receita += budget.revenue
        lucro += budget.revenue - budget_cost(budget, items_by_id, items_by_budget)
    return margin_metrics(lucro, receita)


def nucleo_of(budget: Budget, projects_by_id: dict[str, Project]) -> str:
    if budget.nucleo:
        return budget.nucleo
    project = projects_by_id.get(budget.projeto_id or "")
    if project and project.nucleos:
        return project.nucleos[0]
    return NO_NUCLEO


def loja_of(budget: Budget, projects_by_id: dict[str, Project], loja_names: dict[str, str]) -> str:
    loja_id = budget.loja
    if not loja_id:
        project = projects_by_id.get(budget.projeto_id or "")
        loja_id = project.loja if project else None
    if not loja_id:
        return NO_LOJA
    return loja_names.get(loja_id, loja_id)


def group_margin(
    budgets: list[Budget],
    key_fn,
    items_by_id: dict[str, LineItem],
    items_by_budget: dict[str, list[LineItem]],
) -> list[MarginGroup]:
    """Agrupa por chave somando lucro e receita; ordena por receita desc."""
    totals: dict[str, list[float]] = {}
    for budget in active_budgets(budgets):
        key = key_fn(budget)
        lucro = budget.revenue - budget_cost(budget, items_by_id, items_by_budget)
        acc = totals.setdefault(key, [0.0, 0.0])
        acc[0] += lucro
        acc[1] += budget.revenue

    groups = []
    for name, (lucro, receita) in totals.items():
        m = margin_metrics(lucro, receita)
        groups.append(MarginGroup(name=name, lucro=m.lucro, receita=m.receita, margem=m.margem))
    return sorted(groups, key=lambda g: g.receita, reverse=True)


def total_of_groups(groups: list[MarginGroup]) -> MarginMetrics:
    """Totais de um subconjunto de linhas (margem ponderada)."""
    return margin_metrics(sum(g.lucro for g in groups), sum(g.receita for g in groups))


def _margin_snapshot(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    loja_names: dict[str, str],
    items_by_id,
    items_by_budget,
) -> MarginResult:
    return MarginResult(
        geral=calculate_margin_metrics(budgets, items_by_id, items_by_budget),
        nucleos=group_margin(
            budgets, lambda b: nucleo_of(b, projects_by_id), items_by_id, items_by_budget
        ),
        lojas=group_margin(
            budgets, lambda b: loja_of(b, projects_by_id, loja_names), items_by_id, items_by_budget
        ),
    )


def select_margin_budgets(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    filtros: Filtros,
    date_range=None,
) -> list[Budget]:
    selected = filter_budgets(budgets, projects_by_id, filtros, date_range=date_range)
    return [b for b in selected if b.status in MARGIN_STATUSES]


def compute_margin(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    items: list[LineItem],
    filtros: Filtros,
    loja_names: dict[str, str] = None,
    compare_previous: bool = True,
) -> MarginResult:
    """Margem geral, por núcleo e por loja; opcionalmente do período anterior."""
    loja_names = loja_names or {}
    items_by_id, items_by_budget = index_items(items)

    current = select_margin_budgets(budgets, projects_by_id, filtros)
    result = _margin_snapshot(current, projects_by_id, loja_names, items_by_id, items_by_budget)

    if compare_previous:
        prev_range = previous_period(filtros.date_range)
        previous = select_margin_budgets(budgets, projects_by_id, filtros, date_range=prev_range)
        result.previous = _margin_snapshot(
            previous, projects_by_id, loja_names, items_by_id, items_by_budget
        )
    return result


def minimal_margin(budgets: list[Budget], filtros: Filtros) -> MarginResult:
    """Fallback sem itens nem projetos: só a receita, lucro e margem zerados."""
    selected = filter_budgets(budgets, {}, Filtros(date_range=filtros.date_range, status=filtros.status))
    receita = sum(b.revenue for b in selected if b.status in MARGIN_STATUSES)
    return MarginResult(geral=MarginMetrics(lucro=0.0, receita=receita, margem=0.0))
