"""Testes da performance comercial (vendedores e arquitetos)."""

from datetime import date

from conftest import budget, project
from painel_crm.models.crm_models import DateRange, ReferenceEntry
from painel_crm.services.performance_service import (
    bucket_index,
    compute_performance,
    rank_architects,
    rank_sellers,
)

SELLERS = [
    ReferenceEntry(id="v1", nome="Ana"),
    ReferenceEntry(id="v2", nome="Bruno"),
    ReferenceEntry(id="v3", nome="Carla", ativo=False),
]
ARCHITECTS = [ReferenceEntry(id="a1", nome="Arq. Lima"), ReferenceEntry(id="a2", nome="Arq. Souza")]


class TestBucketIndex:
    def test_edges(self):
        dr = DateRange(date(2025, 1, 1), date(2025, 1, 31))
        assert bucket_index(date(2025, 1, 1), dr) == 0
        assert bucket_index(date(2025, 1, 31), dr) == 6
        assert bucket_index(date(2025, 2, 1), dr) is None

    def test_short_range_stays_in_bounds(self):
        dr = DateRange(date(2025, 1, 1), date(2025, 1, 2))
        assert bucket_index(date(2025, 1, 2), dr) == 3


class TestSellers:
    def test_ranked_by_revenue(self, january):
        projects = {
            "p1": project("p1", vendedor="v1"),
            "p2": project("p2", vendedor="v2"),
        }
        budgets = [
            budget("o1", projeto="p1", valor=1000),
            budget("o2", projeto="p2", valor=5000),
            budget("o3", projeto="p1", valor=500),
        ]
        ranking = rank_sellers(budgets, projects, january, SELLERS)

        assert [i.name for i in ranking] == ["Bruno", "Ana"]
        assert ranking[1].value == 1500.0

    def test_every_seller_of_the_project_gets_the_revenue(self, january):
        projects = {"p1": project("p1", vendedor="v1", **{"Interiores - Vendedor Parceiro": "v2"})}
        ranking = rank_sellers([budget("o1", projeto="p1")], projects, january, SELLERS)
        assert {i.id: i.value for i in ranking} == {"v1": 1000.0, "v2": 1000.0}

    def test_unknown_or_inactive_sellers_are_skipped(self, january):
        projects = {"p1": project("p1", vendedor="v3"), "p2": project("p2", vendedor="v9")}
        budgets = [budget("o1", projeto="p1"), budget("o2", projeto="p2")]
        assert rank_sellers(budgets, projects, january, SELLERS) == []

    def test_top_five(self, january):
        sellers = [ReferenceEntry(id=f"v{i}", nome=f"V{i}") for i in range(8)]
        projects = {f"p{i}": project(f"p{i}", vendedor=f"v{i}") for i in range(8)}
        budgets = [budget(f"o{i}", projeto=f"p{i}", valor=100 * (i + 1)) for i in range(8)]
        ranking = rank_sellers(budgets, projects, january, sellers)
        assert [i.id for i in ranking] == ["v7", "v6", "v5", "v4", "v3"]

    def test_trend_is_real_revenue_per_bucket(self, january):
        projects = {"p1": project("p1", vendedor="v1")}
        budgets = [
            budget("o1", projeto="p1", day=date(2025, 1, 1), valor=100),
            budget("o2", projeto="p1", day=date(2025, 1, 31), valor=300),
        ]
        ranking = rank_sellers(budgets, projects, january, SELLERS)
        assert ranking[0].trend == [100.0, 0.0, 0.0, 0.0, 0.0, 0.0, 300.0]
        assert sum(ranking[0].trend) == ranking[0].value

    def test_only_sent_and_not_rejected_budgets_count(self, january):
        projects = {"p1": project("p1", vendedor="v1")}
        budgets = [
            budget("o1", projeto="p1", status="Em elaboração", valor=5000),
            budget("o2", projeto="p1", status="Reprovado", valor=3000),
            budget("o3", projeto="p1", status="Enviado ao cliente", valor=1000),
        ]
        ranking = rank_sellers(budgets, projects, january, SELLERS)
        assert ranking[0].value == 1000.0
        assert sum(ranking[0].trend) == 1000.0

    def test_removed_budget_excluded(self, january):
        projects = {"p1": project("p1", vendedor="v1")}
        budgets = [budget("o1", projeto="p1"), budget("o2", projeto="p1", removido=True)]
        assert rank_sellers(budgets, projects, january, SELLERS)[0].value == 1000.0


class TestArchitects:
    def test_ranked_by_project_count_in_range(self, january):
        projects = [
            project("p1", arquiteto="a1", day=date(2025, 1, 3)),
            project("p2", arquiteto="a1", day=date(2025, 1, 4)),
            project("p3", arquiteto="a2", day=date(2025, 1, 5)),
            project("p4", arquiteto="a2", day=date(2024, 12, 5)),
        ]
        ranking = rank_architects(projects, january, ARCHITECTS)
        assert [(i.name, i.value) for i in ranking] == [("Arq. Lima", 2.0), ("Arq. Souza", 1.0)]


class TestComputePerformance:
    def test_roundtrip(self, january):
        projects = [project("p1", vendedor="v1", arquiteto="a1", day=date(2025, 1, 5))]
        result = compute_performance([budget("o1")], projects, january, SELLERS, ARCHITECTS)
        assert result.vendedores[0].name == "Ana"
        assert result.arquitetos[0].name == "Arq. Lima"
        assert type(result).from_dict(result.to_dict()) == result
