"""
Serviço do Funil de Orçamentos.

Estados (a partir do status do orçamento): não enviado, em aprovação,
aprovado, reprovado, liberado. "Enviados" é a soma dos quatro últimos.

- Funil fechado: orçamentos criados dentro do período
- Funil aberto: orçamentos criados do início até o fim do período
- Percentuais: enviados / criados; cada estágio / enviados
"""

from painel_crm.models.crm_models import Budget, BudgetStatus, Filtros, Project
from painel_crm.models.metric_models import (
    FUNNEL_STAGES,
    FunnelMetrics,
    FunnelResult,
    MetricData,
    StageDelta,
)
from painel_crm.services.filters_service import (
    FUNNEL_CLOSED,
    active_budgets,
    filter_budgets,
    previous_period,
)
from painel_crm.utils.formatting import ZERO_PERCENT, percent_label, safe_ratio


def _stage(count: int, denominator: int, label: str, sublabel: str) -> MetricData:
    return MetricData(
        count=count,
        percentage=percent_label(count, denominator),
        percentage_value=safe_ratio(count, denominator),
        label=label,
        sublabel=sublabel,
    )


def compute_funnel_metrics(budgets: list[Budget]) -> FunnelMetrics:
    """Conta orçamentos por estágio. Orçamentos removidos nunca entram."""
    budgets = active_budgets(budgets)
    created = len(budgets)
    counts = {status: 0 for status in BudgetStatus}
    for budget in budgets:
        counts[budget.status] += 1
    sent = created - counts[BudgetStatus.NOT_SENT]

    return FunnelMetrics(
        created=MetricData(count=created, label="Orçamentos Criados", sublabel="orçamentos"),
        sent=_stage(sent, created, "Orçamentos Enviados", "ao cliente"),
        in_approval=_stage(counts[BudgetStatus.IN_APPROVAL], sent, "Em Aprovação", "dos enviados"),
        approved=_stage(counts[BudgetStatus.APPROVED], sent, "Aprovados", "dos enviados"),
        rejected=_stage(counts[BudgetStatus.REJECTED], sent, "Reprovados", "dos enviados"),
        released=_stage(counts[BudgetStatus.RELEASED], sent, "Liberados", "para pedido"),
        projects=len({b.projeto_id for b in budgets if b.projeto_id}),
    )


def compute_deltas(current: FunnelMetrics, previous: FunnelMetrics) -> dict[str, StageDelta]:
    """Variação absoluta e percentual de cada estágio contra o período anterior."""
    deltas = {}
    for stage in FUNNEL_STAGES:
        cur = getattr(current, stage).count
        prev = getattr(previous, stage).count
        deltas[stage] = StageDelta(value=cur - prev, percentage=safe_ratio(cur - prev, prev))
    return deltas


def compute_funnel(
    budgets: list[Budget],
    projects_by_id: dict[str, Project],
    filtros: Filtros,
    mode: str = FUNNEL_CLOSED,
    compare_previous: bool = False,
) -> FunnelResult:
    """
    Funil para o filtro.

    O filtro de status não se aplica aqui: o próprio funil é a quebra por status.
    """
    selected = filter_budgets(budgets, projects_by_id, filtros, mode=mode, apply_status=False)
    current = compute_funnel_metrics(selected)
    result = FunnelResult(mode=mode, current=current)

    if compare_previous:
        prev_range = previous_period(filtros.date_range)
        prev_selected = filter_budgets(
            budgets, projects_by_id, filtros, date_range=prev_range, mode=mode, apply_status=False
        )
        result.previous = compute_funnel_metrics(prev_selected)
        result.deltas = compute_deltas(current, result.previous)

    return result


def minimal_funnel(budgets: list[Budget], filtros: Filtros, mode: str = FUNNEL_CLOSED) -> FunnelResult:
    """
    Fallback sem o join com projetos: contagens brutas, percentuais zerados.
    """
    selected = filter_budgets(
        budgets, {}, Filtros(date_range=filtros.date_range), mode=mode, apply_status=False
    )
    metrics = compute_funnel_metrics(selected)
    for stage in FUNNEL_STAGES:
        data = getattr(metrics, stage)
        data.percentage = ZERO_PERCENT
        data.percentage_value = 0.0
    return FunnelResult(mode=mode, current=metrics)
