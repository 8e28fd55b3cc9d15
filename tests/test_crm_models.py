"""Testes dos modelos do CRM: status, receita, vendedores, itens."""

from datetime import date

import pytest

from conftest import raw_budget, raw_project
from painel_crm.models.crm_models import (
    Budget,
    BudgetStatus,
    DateRange,
    LineItem,
    Project,
    ReferenceEntry,
    budget_revenue,
    extract_vendedor_ids,
    normalize_budget_status,
    status_filter_matches,
)


class TestNormalizeBudgetStatus:
    @pytest.mark.parametrize("text,expected", [
        ("Liberado para pedido", BudgetStatus.RELEASED),
        ("Reprovado", BudgetStatus.REJECTED),
        ("REJEITADO pelo cliente", BudgetStatus.REJECTED),
        ("Aprovado", BudgetStatus.APPROVED),
        ("Em aprovação", BudgetStatus.IN_APPROVAL),
        ("Em aprovacao", BudgetStatus.IN_APPROVAL),
        ("Enviado ao cliente", BudgetStatus.IN_APPROVAL),
        ("Não enviado", BudgetStatus.NOT_SENT),
        ("Rascunho", BudgetStatus.NOT_SENT),
        ("", BudgetStatus.NOT_SENT),
        (None, BudgetStatus.NOT_SENT),
    ])
    def test_vocabulary(self, text, expected):
        assert normalize_budget_status(text) is expected

    def test_priority_released_over_approved(self):
        assert normalize_budget_status("Aprovado e liberado") is BudgetStatus.RELEASED

    def test_priority_rejected_over_approved(self):
        # "reprovado" não pode cair em APPROVED
        assert normalize_budget_status("Reprovado") is BudgetStatus.REJECTED

    def test_is_sent(self):
        assert not BudgetStatus.NOT_SENT.is_sent
        assert all(s.is_sent for s in BudgetStatus if s is not BudgetStatus.NOT_SENT)


class TestStatusFilter:
    def test_no_filter_matches_everything(self):
        assert status_filter_matches(None, BudgetStatus.NOT_SENT)

    def test_enviado_matches_every_sent_state(self):
        assert status_filter_matches("Enviado", BudgetStatus.REJECTED)
        assert not status_filter_matches("Enviado", BudgetStatus.NOT_SENT)

    def test_aprovado_includes_released(self):
        assert status_filter_matches("Aprovado", BudgetStatus.RELEASED)
        assert not status_filter_matches("Aprovado", BudgetStatus.IN_APPROVAL)

    def test_em_aprovacao(self):
        assert status_filter_matches("Em Aprovação", BudgetStatus.IN_APPROVAL)
        assert not status_filter_matches("Em Aprovação", BudgetStatus.APPROVED)


class TestBudget:
    def test_revenue_alias_priority(self):
        raw = {"valor_total": 50, "valor_final_produtos": 80}
        assert budget_revenue(raw) == 80.0

    def test_revenue_defaults_to_zero(self):
        assert budget_revenue({}) == 0.0

    def test_revenue_ignores_garbage(self):
        assert budget_revenue({"valor_liquido_produtos": "abc"}) == 0.0

    def test_from_api(self):
        b = Budget.from_api(raw_budget("o1", day=date(2025, 3, 2), itens=["i1", "i2"]))
        assert b.id == "o1"
        assert b.projeto_id == "p1"
        assert b.status is BudgetStatus.IN_APPROVAL
        assert b.created_day == date(2025, 3, 2)
        assert b.revenue == 1000.0
        assert b.item_ids == ["i1", "i2"]
        assert b.removido is False

    def test_created_day_uses_local_timezone(self):
        # 01:00 UTC ainda é o dia anterior em São Paulo
        b = Budget.from_api({"_id": "o", "Created Date": "2025-01-11T01:00:00.000Z"})
        assert b.created_day == date(2025, 1, 10)

    def test_data_orcamento_fallback(self):
        b = Budget.from_api({"_id": "o", "data_orcamento": "2025-01-05T15:00:00Z"})
        assert b.created_day == date(2025, 1, 5)


class TestProject:
    def test_vendedor_ids_primary_before_partner_without_repeats(self):
        raw = {
            "Interiores - Vendedor Parceiro": "v3",
            "vendedor_user": "v1",
            "Interiores - Vendedor Principal": "v2",
            "Gerenciador": "v1",
        }
        assert extract_vendedor_ids(raw) == ["v1", "v2", "v3"]

    def test_from_api(self):
        p = Project.from_api(raw_project("p1", nucleos=("Interiores", "Exteriores")))
        assert p.nucleos == ["Interiores", "Exteriores"]
        assert p.vendedor_ids == ["v1"]
        assert p.created_day == date(2025, 1, 5)


class TestLineItem:
    def test_cost_falls_back_to_quantity_times_unit(self):
        item = LineItem.from_api({"_id": "i", "quantidade": 3, "custo_unitario": 10})
        assert item.custo_total == 30.0

    def test_price_falls_back_to_valor_total(self):
        item = LineItem.from_api({"_id": "i", "valor_total": 99.5})
        assert item.preco_total == 99.5


class TestReferenceEntry:
    def test_inactive_seller_is_hidden(self):
        e = ReferenceEntry.from_api(
            {"_id": "v1", "nome": "Ana", "status_do_vendedor": "INATIVO"}, "vendedor"
        )
        assert e.nome == "Ana"
        assert not e.visible

    def test_architect_name_field(self):
        e = ReferenceEntry.from_api({"_id": "a1", "Nome do Arquiteto": "Bia"}, "arquiteto")
        assert e.nome == "Bia"
        assert e.visible


class TestDateRange:
    def test_days_inclusive(self):
        assert DateRange(date(2025, 1, 1), date(2025, 1, 31)).days == 31

    def test_contains(self):
        dr = DateRange(date(2025, 1, 1), date(2025, 1, 31))
        assert dr.contains(date(2025, 1, 31))
        assert not dr.contains(date(2025, 2, 1))
        assert not dr.contains(None)
