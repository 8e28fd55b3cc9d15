"""Testes do funil de orçamentos."""

from datetime import date, timedelta

from conftest import budget, project
from painel_crm.models.crm_models import DateRange, Filtros
from painel_crm.services.filters_service import FUNNEL_CLOSED, FUNNEL_OPEN
from painel_crm.services.funnel_service import compute_funnel, compute_funnel_metrics, minimal_funnel


class TestFunnelCounts:
    def test_ten_sent_budgets(self, january):
        budgets = [budget(f"o{i}") for i in range(10)]
        result = compute_funnel(budgets, {}, january)

        assert result.current.created.count == 10
        assert result.current.sent.count == 10
        assert result.current.sent.percentage == "100.0%"
        assert result.current.in_approval.count == 10

    def test_sent_equals_sum_of_substages(self):
        statuses = ["Enviado ao cliente", "Aprovado", "Reprovado", "Liberado", "Não enviado", "Em aprovação"]
        metrics = compute_funnel_metrics([budget(f"o{i}", status=s) for i, s in enumerate(statuses)])

        assert metrics.created.count == 6
        assert metrics.sent.count == 5
        assert metrics.sent.count == (
            metrics.in_approval.count + metrics.approved.count
            + metrics.rejected.count + metrics.released.count
        )
        assert metrics.approved.percentage == "20.0%"

    def test_zero_denominator_sentinel(self):
        metrics = compute_funnel_metrics([budget("o1", status="Rascunho")])
        assert metrics.sent.count == 0
        assert metrics.approved.percentage == "0%"
        assert metrics.approved.percentage_value == 0.0

    def test_empty_input(self):
        metrics = compute_funnel_metrics([])
        assert metrics.created.count == 0
        assert metrics.sent.percentage == "0%"

    def test_removed_budget_does_not_count(self, january):
        budgets = [budget("o1"), budget("o2", removido=True)]
        result = compute_funnel(budgets, {}, january)
        assert result.current.created.count == 1

    def test_distinct_projects(self):
        metrics = compute_funnel_metrics([budget("o1", projeto="p1"), budget("o2", projeto="p1"), budget("o3", projeto="p2")])
        assert metrics.projects == 2


class TestFunnelWindows:
    def test_open_funnel_includes_old_and_excludes_future(self):
        end = date(2025, 6, 30)
        filtros = Filtros(date_range=DateRange(date(2025, 6, 1), end))
        budgets = [
            budget("old", day=end - timedelta(days=100)),
            budget("future", day=end + timedelta(days=1)),
            budget("inside", day=date(2025, 6, 15)),
        ]
        open_result = compute_funnel(budgets, {}, filtros, mode=FUNNEL_OPEN)
        closed_result = compute_funnel(budgets, {}, filtros, mode=FUNNEL_CLOSED)

        assert open_result.current.created.count == 2
        assert closed_result.current.created.count == 1

    def test_status_filter_is_not_applied(self, january):
        filtros = Filtros(date_range=january.date_range, status="Aprovado")
        budgets = [budget("o1", status="Aprovado"), budget("o2", status="Reprovado")]
        assert compute_funnel(budgets, {}, filtros).current.created.count == 2

    def test_categorical_filter_through_project(self, january):
        projects = {
            "p1": project("p1", loja="l1"),
            "p2": project("p2", loja="l2"),
        }
        filtros = Filtros(date_range=january.date_range, loja="l1")
        budgets = [budget("o1", projeto="p1"), budget("o2", projeto="p2"), budget("o3", projeto=None)]
        assert compute_funnel(budgets, projects, filtros).current.created.count == 1


class TestFunnelComparison:
    def test_previous_period_deltas(self, january):
        budgets = [
            budget("cur1", day=date(2025, 1, 10)),
            budget("cur2", day=date(2025, 1, 20)),
            budget("prev1", day=date(2024, 12, 15)),
        ]
        result = compute_funnel(budgets, {}, january, compare_previous=True)

        assert result.previous.created.count == 1
        assert result.deltas["created"].value == 1
        assert result.deltas["created"].percentage == 100.0

    def test_roundtrip_through_dict(self, january):
        result = compute_funnel([budget("o1")], {}, january, compare_previous=True)
        restored = type(result).from_dict(result.to_dict())
        assert restored == result


class TestMinimalFunnel:
    def test_counts_kept_percentages_zeroed(self, january):
        fallback = minimal_funnel([budget("o1"), budget("o2", status="Rascunho")], january)
        assert fallback.current.created.count == 2
        assert fallback.current.sent.count == 1
        assert fallback.current.sent.percentage == "0%"
        assert fallback.current.sent.percentage_value == 0.0
