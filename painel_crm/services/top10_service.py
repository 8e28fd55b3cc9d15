"""
Serviço TOP 10: clientes por receita e produtos por valor vendido.
"""

from painel_crm.config import TOP_RANKING
from painel_crm.models.crm_models import Budget, Filtros, LineItem, Project, ReferenceEntry
from painel_crm.models.metric_models import RankingItem, Top10Result
from painel_crm.services.filters_service import filter_budgets
from painel_crm.services.margin_service import budget_items, index_items


def _sorted(items: dict[str, RankingItem], limit: int) -> list[RankingItem]:
    return sorted(items.values(), key=lambda i: i.value, reverse=True)[:limit]


def rank_clients(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    clientes: list[ReferenceEntry],
    limit: int = TOP_RANKING,
) -> list[RankingItem]:
    """Soma a receita dos orçamentos pelo cliente do projeto vinculado."""
    names = {c.id: c.nome for c in clientes if not c.removido and c.nome}
    ranking: dict[str, RankingItem] = {}
    for budget in budgets:
        project = projects_by_id.get(budget.projeto_id or "")
        if project is None or not project.cliente:
            continue
        item = ranking.setdefault(
            project.cliente,
            RankingItem(id=project.cliente, name=names.get(project.cliente, project.cliente)),
        )
        item.value += budget.revenue
        item.quantidade += 1
    return _sorted(ranking, limit)


def rank_products(
    budgets: list[Budget],
    items: list[LineItem],
    limit: int = TOP_RANKING,
) -> list[RankingItem]:
    """Soma preço total e quantidade dos itens por produto."""
    items_by_id, items_by_budget = index_items(items)
    ranking: dict[str, RankingItem] = {}
    for budget in budgets:
        for line in budget_items(budget, items_by_id, items_by_budget):
            key = line.produto_id or line.produto_nome
            if not key:
                continue
            item = ranking.setdefault(
                key, RankingItem(id=key, name=line.produto_nome or key)
            )
            item.value += line.preco_total
            item.quantidade += line.quantidade
    return _sorted(ranking, limit)


def compute_top10(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    items: list[LineItem],
    filtros: Filtros,
    clientes: list[ReferenceEntry] = None,
) -> Top10Result:
    selected = filter_budgets(budgets, projects_by_id, filtros)
    return Top10Result(
        clientes=rank_clients(selected, projects_by_id, clientes or []),
        produtos=rank_products(selected, items),
    )

