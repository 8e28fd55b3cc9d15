"""
Modelos de dados do CRM.
Dataclasses tipadas para filtros, projetos, orçamentos e itens de orçamento,
construídas a partir dos registros brutos da API (fronteira de ingestão).
"""

import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from painel_crm.config import TIMEZONE


# ─── Datas ───

def parse_api_datetime(value) -> Optional[datetime]:
    """Converte '2025-01-05T13:45:00.000Z' em datetime com timezone (UTC)."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_local_date(dt: Optional[datetime]) -> Optional[date]:
    """Dia civil do registro no fuso do painel."""
    if dt is None:
        return None
    return dt.astimezone(ZoneInfo(TIMEZONE)).date()


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def day_start_utc(day: date) -> datetime:
    """00:00:00 local do dia, em UTC (limite inferior das constraints)."""
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(TIMEZONE)).astimezone(timezone.utc)


def day_end_utc(day: date) -> datetime:
    """23:59:59.999 local do dia, em UTC (limite superior das constraints)."""
    return datetime.combine(day, time.max, tzinfo=ZoneInfo(TIMEZONE)).astimezone(timezone.utc)


def _to_float(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


# ─── Filtros ───

@dataclass(frozen=True)
class DateRange:
    """Período inclusivo, granularidade de dia."""
    start: date | datetime
    end: date | datetime

    @property
    def start_day(self) -> date:
        return _as_date(self.start)

    @property
    def end_day(self) -> date:
        return _as_date(self.end)

    def contains(self, day: Optional[date]) -> bool:
        if day is None:
            return False
        return self.start_day <= day <= self.end_day

    @property
    def days(self) -> int:
        return (self.end_day - self.start_day).days + 1


# Valores do filtro de status do orçamento (dropdown do header)
STATUS_FILTERS = ("Em Aprovação", "Enviado", "Aprovado", "Reprovado")


@dataclass(frozen=True)
class Filtros:
    """Filtro emitido pela UI. Imutável: qualquer mudança gera um novo valor."""
    date_range: DateRange
    nucleo: Optional[str] = None
    loja: Optional[str] = None
    vendedor: Optional[str] = None
    arquiteto: Optional[str] = None
    status: Optional[str] = None

    @property
    def has_categorical(self) -> bool:
        return any((self.nucleo, self.loja, self.vendedor, self.arquiteto))


# ─── Status do orçamento ───

class BudgetStatus(str, Enum):
    """Estado do orçamento no funil comercial."""
    NOT_SENT = "not_sent"
    IN_APPROVAL = "in_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    RELEASED = "released"

    @property
    def is_sent(self) -> bool:
        return self is not BudgetStatus.NOT_SENT


def _fold(text: str) -> str:
    """minúsculas e sem acentos"""
    normalized = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in normalized if not unicodedata.combining(c))


_NOT_SENT_VOCABULARY = ("nao enviado", "not sent")

# Ordem de prioridade: o primeiro vocabulário que casar vence
_STATUS_VOCABULARY = (
    (BudgetStatus.RELEASED, ("liberado", "released")),
    (BudgetStatus.REJECTED, ("reprovado", "rejeitado", "rejected")),
    (BudgetStatus.APPROVED, ("aprovado", "approved")),
    (BudgetStatus.IN_APPROVAL, ("aprovacao", "enviado", "approval", "sent")),
)


def normalize_budget_status(text: Optional[str]) -> BudgetStatus:
    """
    Classifica o status livre do orçamento.

    "Enviado ao cliente" é um orçamento enviado aguardando aprovação, por isso
    cai em IN_APPROVAL; assim enviados = em aprovação + aprovados + reprovados + liberados.
    """
    if not text:
        return BudgetStatus.NOT_SENT
    folded = _fold(str(text))
    if any(w in folded for w in _NOT_SENT_VOCABULARY):
        return BudgetStatus.NOT_SENT
    for status, words in _STATUS_VOCABULARY:
        if any(w in folded for w in words):
            return status
    return BudgetStatus.NOT_SENT


def status_filter_matches(status_filter: Optional[str], status: BudgetStatus) -> bool:
    """Aplica o filtro de status do header (Em Aprovação, Enviado, Aprovado, Reprovado)."""
    if not status_filter:
        return True
    wanted = _fold(status_filter)
    if wanted == "enviado":
        return status.is_sent
    if wanted == "em aprovacao":
        return status is BudgetStatus.IN_APPROVAL
    if wanted == "aprovado":
        return status in (BudgetStatus.APPROVED, BudgetStatus.RELEASED)
    if wanted == "reprovado":
        return status is BudgetStatus.REJECTED
    return True


# ─── Projeto ───

VENDEDOR_PRIMARY_FIELDS = ("vendedor_user", "Gerenciador")

VENDEDOR_PRINCIPAL_FIELDS = (
    "user Interiores - Vendedor Principal",
    "user Exteriores - Vendedor Principal",
    "user Conceito - Vendedor Principal",
    "user Projetos - Vendedor Principal",
    "Interiores - Vendedor Principal",
    "Exteriores - Vendedor Principal",
    "Conceito - Vendedor Principal",
    "Projetos - Vendedor Principal",
)

VENDEDOR_PARCEIRO_FIELDS = (
    "user Interiores - Vendedor Parceiro",
    "user Exteriores - Vendedor Parceiro",
    "user Conceito - Vendedor Parceiro",
    "Interiores - Vendedor Parceiro",
    "Exteriores - Vendedor Parceiro",
    "Conceito - Vendedor Parceiro",
)


def extract_vendedor_ids(raw: dict) -> list[str]:
    """IDs de vendedor do projeto: principais antes de parceiros, sem repetição."""
    ids: list[str] = []
    for fld in VENDEDOR_PRIMARY_FIELDS + VENDEDOR_PRINCIPAL_FIELDS + VENDEDOR_PARCEIRO_FIELDS:
        value = raw.get(fld)
        if value and value not in ids:
            ids.append(value)
    return ids


@dataclass
class Project:
    """Projeto (registro central de vendas do CRM)."""
    id: str
    created_date: Optional[datetime] = None
    nucleos: list[str] = field(default_factory=list)
    loja: Optional[str] = None
    arquiteto: Optional[str] = None
    cliente: Optional[str] = None
    vendedor_ids: list[str] = field(default_factory=list)
    orcamento_ids: list[str] = field(default_factory=list)
    status: str = ""
    titulo: str = ""

    @property
    def created_day(self) -> Optional[date]:
        return to_local_date(self.created_date)

    @classmethod
    def from_api(cls, raw: dict) -> "Project":
        return cls(
            id=raw.get("_id", ""),
            created_date=parse_api_datetime(raw.get("Created Date")),
            nucleos=list(raw.get("nucleo_lista") or []),
            loja=raw.get("loja"),
            arquiteto=raw.get("arquiteto"),
            cliente=raw.get("cliente"),
            vendedor_ids=extract_vendedor_ids(raw),
            orcamento_ids=list(raw.get("new_orcamentos") or []),
            status=raw.get("status", ""),
            titulo=raw.get("titulo", ""),
        )


# ─── Orçamento ───

# Aliases legados do valor líquido de produtos, em ordem de prioridade
REVENUE_FIELDS = (
    "valor_liquido_produtos",
    "valor_produtos_liquido",
    "valor_final_produtos",
    "valor_final_total",
    "valor_total",
)

LINE_ITEM_FIELDS = ("itens", "itens_orcamento", "item_orcamento")


def budget_revenue(raw: dict) -> float:
    """Primeiro alias de receita presente no registro; 0 se nenhum."""
    for fld in REVENUE_FIELDS:
        if raw.get(fld) not in (None, ""):
            return _to_float(raw.get(fld))
    return 0.0


@dataclass
class Budget:
    """Orçamento: proposta precificada vinculada a um projeto."""
    id: str
    projeto_id: Optional[str] = None
    status_text: str = ""
    status: BudgetStatus = BudgetStatus.NOT_SENT
    created_date: Optional[datetime] = None
    revenue: float = 0.0
    removido: bool = False
    item_ids: list[str] = field(default_factory=list)
    nucleo: Optional[str] = None
    loja: Optional[str] = None

    @property
    def created_day(self) -> Optional[date]:
        return to_local_date(self.created_date)

    @classmethod
    def from_api(cls, raw: dict) -> "Budget":
        item_ids: list[str] = []
        for fld in LINE_ITEM_FIELDS:
            if isinstance(raw.get(fld), list):
                item_ids = list(raw[fld])
                break
        status_text = str(raw.get("status") or "")
        return cls(
            id=raw.get("_id", ""),
            projeto_id=raw.get("projeto") or None,
            status_text=status_text,
            status=normalize_budget_status(status_text),
            created_date=parse_api_datetime(
                raw.get("Created Date") or raw.get("data_orcamento")
            ),
            revenue=budget_revenue(raw),
            removido=bool(raw.get("removido", False)),
            item_ids=item_ids,
            nucleo=raw.get("nucleo") or None,
            loja=raw.get("loja") or None,
        )


# ─── Item de orçamento ───

@dataclass
class LineItem:
    """Item de orçamento (produto precificado)."""
    id: str
    orcamento_id: Optional[str] = None
    produto_id: Optional[str] = None
    produto_nome: str = ""
    quantidade: float = 0.0
    custo_unitario: float = 0.0
    custo_total: float = 0.0
    preco_total: float = 0.0

    @classmethod
    def from_api(cls, raw: dict) -> "LineItem":
        quantidade = _to_float(raw.get("quantidade"))
        custo_unitario = _to_float(raw.get("custo_unitario"))
        if raw.get("custo_total") not in (None, ""):
            custo_total = _to_float(raw.get("custo_total"))
        else:
            custo_total = quantidade * custo_unitario
        preco = raw.get("preco_total", raw.get("valor_total"))
        return cls(
            id=raw.get("_id", ""),
            orcamento_id=raw.get("orcamento") or None,
            produto_id=raw.get("produto") or None,
            produto_nome=raw.get("nome_produto") or raw.get("descricao") or "",
            quantidade=quantidade,
            custo_unitario=custo_unitario,
            custo_total=custo_total,
            preco_total=_to_float(preco),
        )


# ─── Listas de referência (vendedores, arquitetos, clientes, lojas) ───

# coleção → (campos de nome, campo de status)
REFERENCE_FIELDS = {
    "vendedor": (("nome",), "status_do_vendedor"),
    "arquiteto": (("Nome do Arquiteto", "nome"), "Status do Arquiteto"),
    "cliente": (("nome", "Nome", "nome_completo"), None),
    "loja": (("nome_da_loja", "nome"), None),
}


@dataclass
class ReferenceEntry:
    """Entrada de lista de referência (para mapear ID → nome)."""
    id: str
    nome: str = ""
    removido: bool = False
    ativo: bool = True

    @property
    def visible(self) -> bool:
        return not self.removido and self.ativo

    @classmethod
    def from_api(cls, raw: dict, collection: str) -> "ReferenceEntry":
        name_fields, status_field = REFERENCE_FIELDS.get(collection, (("nome",), None))
        nome = next((raw[f] for f in name_fields if raw.get(f)), "")
        ativo = True
        if status_field and raw.get(status_field):
            ativo = raw[status_field] == "ATIVO"
        return cls(
            id=raw.get("_id", ""),
            nome=nome,
            removido=bool(raw.get("removido", False)),
            ativo=ativo,
        )
