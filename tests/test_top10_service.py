"""Testes dos rankings TOP 10."""

from conftest import budget, item, project
from painel_crm.models.crm_models import ReferenceEntry
from painel_crm.services.top10_service import compute_top10


class TestTop10:
    def test_clients_by_revenue_through_project(self, january):
        projects = {
            "p1": project("p1", cliente="c1"),
            "p2": project("p2", cliente="c2"),
        }
        budgets = [
            budget("o1", projeto="p1", valor=100),
            budget("o2", projeto="p2", valor=700),
            budget("o3", projeto="p1", valor=200),
            budget("o4", projeto="missing", valor=5000),
        ]
        clientes = [ReferenceEntry(id="c1", nome="Maria"), ReferenceEntry(id="c2", nome="João")]
        result = compute_top10(budgets, projects, [], january, clientes)

        assert [(c.name, c.value) for c in result.clientes] == [("João", 700.0), ("Maria", 300.0)]

    def test_client_without_name_uses_id(self, january):
        result = compute_top10([budget("o1")], {"p1": project("p1", cliente="c9")}, [], january)
        assert result.clientes[0].name == "c9"

    def test_products_sum_price_and_quantity(self, january):
        budgets = [budget("o1", itens=["i1", "i2"]), budget("o2", itens=["i3"])]
        items = [
            item("i1", orcamento="o1", produto="sofa", nome="Sofá", quantidade=2, preco_total=4000),
            item("i2", orcamento="o1", produto="mesa", nome="Mesa", quantidade=1, preco_total=1500),
            item("i3", orcamento="o2", produto="sofa", nome="Sofá", quantidade=1, preco_total=2000),
        ]
        result = compute_top10(budgets, {}, items, january)

        sofa = result.produtos[0]
        assert (sofa.name, sofa.value, sofa.quantidade) == ("Sofá", 6000.0, 3.0)
        assert result.produtos[1].name == "Mesa"

    def test_truncated_to_ten(self, january):
        projects = {f"p{i}": project(f"p{i}", cliente=f"c{i}") for i in range(15)}
        budgets = [budget(f"o{i}", projeto=f"p{i}", valor=i + 1) for i in range(15)]
        result = compute_top10(budgets, projects, [], january)
        assert len(result.clientes) == 10
        assert result.clientes[0].id == "c14"

    def test_removed_budget_and_its_items_excluded(self, january):
        projects = {"p1": project("p1", cliente="c1")}
        budgets = [budget("o1", projeto="p1", removido=True, itens=["i1"])]
        items = [item("i1", orcamento="o1")]
        result = compute_top10(budgets, projects, items, january)
        assert result.clientes == []
        assert result.produtos == []
