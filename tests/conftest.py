"""Fixtures compartilhadas: registros brutos da API, sessão HTTP falsa e relógio."""

from datetime import date

import pytest
import requests

from painel_crm.models.crm_models import Budget, DateRange, Filtros, LineItem, Project
from painel_crm.utils.caching import InMemoryStore, ResultCache


# ─── Registros brutos ───

def api_date(day: date) -> str:
    # 15:00 UTC cai no mesmo dia em America/Sao_Paulo
    return f"{day.isoformat()}T15:00:00.000Z"


def raw_budget(_id, day=date(2025, 1, 10), status="Enviado ao cliente", projeto="p1",
               valor=1000.0, itens=None, removido=False, **extra):
    raw = {
        "_id": _id,
        "Created Date": api_date(day),
        "status": status,
        "projeto": projeto,
        "valor_liquido_produtos": valor,
        "removido": removido,
        "itens": itens if itens is not None else [],
    }
    raw.update(extra)
    return raw


def raw_project(_id, day=date(2025, 1, 5), nucleos=("Interiores",), loja="l1",
                arquiteto="a1", cliente="c1", vendedor="v1", **extra):
    raw = {
        "_id": _id,
        "Created Date": api_date(day),
        "nucleo_lista": list(nucleos),
        "loja": loja,
        "arquiteto": arquiteto,
        "cliente": cliente,
        "vendedor_user": vendedor,
    }
    raw.update(extra)
    return raw


def raw_item(_id, orcamento="o1", produto="prod1", nome="Sofá", quantidade=1,
             custo_total=600.0, preco_total=1000.0):
    return {
        "_id": _id,
        "orcamento": orcamento,
        "produto": produto,
        "nome_produto": nome,
        "quantidade": quantidade,
        "custo_total": custo_total,
        "preco_total": preco_total,
    }


def budget(_id, **kwargs) -> Budget:
    return Budget.from_api(raw_budget(_id, **kwargs))


def project(_id, **kwargs) -> Project:
    return Project.from_api(raw_project(_id, **kwargs))


def item(_id, **kwargs) -> LineItem:
    return LineItem.from_api(raw_item(_id, **kwargs))


def envelope(results, remaining=0, cursor=0):
    return {"response": {"cursor": cursor, "results": results, "count": len(results), "remaining": remaining}}


# ─── HTTP falso ───

class FakeResponse:
    def __init__(self, body=None, status_code=200, json_error=False):
        self.body = body
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self.json_error:
            raise ValueError("Expecting value")
        return self.body


class FakeSession:
    """Devolve respostas (ou levanta exceções) na ordem enfileirada."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Requisição inesperada: {url}")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, minutes):
        self.now += minutes * 60


# ─── Fixtures ───

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResultCache(InMemoryStore(), clock=clock)


@pytest.fixture
def january():
    return Filtros(date_range=DateRange(date(2025, 1, 1), date(2025, 1, 31)))
