"""
Modelos de resultado das métricas do painel.
Dataclasses com conversão para/de dict (payload JSON do cache).
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


# ─── Funil ───

@dataclass
class MetricData:
    """Um estágio do funil."""
    count: int = 0
    percentage: str = "0%"
    percentage_value: float = 0.0
    label: str = ""
    sublabel: str = ""


FUNNEL_STAGES = ("created", "sent", "in_approval", "approved", "rejected", "released")


@dataclass
class FunnelMetrics:
    """Contagens do funil para uma janela de datas."""
    created: MetricData = field(default_factory=MetricData)
    sent: MetricData = field(default_factory=MetricData)
    in_approval: MetricData = field(default_factory=MetricData)
    approved: MetricData = field(default_factory=MetricData)
    rejected: MetricData = field(default_factory=MetricData)
    released: MetricData = field(default_factory=MetricData)
    projects: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "FunnelMetrics":
        stages = {s: MetricData(**data[s]) for s in FUNNEL_STAGES}
        return cls(projects=data.get("projects", 0), **stages)


@dataclass
class StageDelta:
    """Variação de um estágio contra o período anterior."""
    value: int = 0
    percentage: float = 0.0


@dataclass
class FunnelResult:
    mode: str
    current: FunnelMetrics
    previous: Optional[FunnelMetrics] = None
    deltas: dict[str, StageDelta] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "FunnelResult":
        previous = data.get("previous")
        return cls(
            mode=data["mode"],
            current=FunnelMetrics.from_dict(data["current"]),
            previous=FunnelMetrics.from_dict(previous) if previous else None,
            deltas={k: StageDelta(**v) for k, v in (data.get("deltas") or {}).items()},
        )


# ─── Margem ───

@dataclass
class MarginMetrics:
    """Lucro, receita e margem ponderada (%)."""
    lucro: float = 0.0
    receita: float = 0.0
    margem: float = 0.0


@dataclass
class MarginGroup:
    """Linha de tabela de margem (núcleo ou loja)."""
    name: str
    lucro: float = 0.0
    receita: float = 0.0
    margem: float = 0.0


@dataclass
class MarginResult:
    geral: MarginMetrics = field(default_factory=MarginMetrics)
    nucleos: list[MarginGroup] = field(default_factory=list)
    lojas: list[MarginGroup] = field(default_factory=list)
    previous: Optional["MarginResult"] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MarginResult":
        previous = data.get("previous")
        return cls(
            geral=MarginMetrics(**data["geral"]),
            nucleos=[MarginGroup(**g) for g in data.get("nucleos", [])],
            lojas=[MarginGroup(**g) for g in data.get("lojas", [])],
            previous=cls.from_dict(previous) if previous else None,
        )


# ─── Performance comercial ───

@dataclass
class PerformanceItem:
    """Vendedor ou arquiteto no ranking, com série por período."""
    id: str
    name: str
    value: float = 0.0
    trend: list[float] = field(default_factory=list)


@dataclass
class PerformanceResult:
    vendedores: list[PerformanceItem] = field(default_factory=list)
    arquitetos: list[PerformanceItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PerformanceResult":
        return cls(
            vendedores=[PerformanceItem(**i) for i in data.get("vendedores", [])],
            arquitetos=[PerformanceItem(**i) for i in data.get("arquitetos", [])],
        )


# ─── TOP 10 ───

@dataclass
class RankingItem:
    id: str
    name: str
    value: float = 0.0
    quantidade: float = 0.0


@dataclass
class Top10Result:
    clientes: list[RankingItem] = field(default_factory=list)
    produtos: list[RankingItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Top10Result":
        return cls(
            clientes=[RankingItem(**i) for i in data.get("clientes", [])],
            produtos=[RankingItem(**i) for i in data.get("produtos", [])],
        )


# ─── Opções de filtro ───

@dataclass
class FilterOption:
    id: str
    name: str
    nucleos: list[str] = field(default_factory=list)


@dataclass
class FilterOptions:
    nucleos: list[FilterOption] = field(default_factory=list)
    lojas: list[FilterOption] = field(default_factory=list)
    vendedores: list[FilterOption] = field(default_factory=list)
    arquitetos: list[FilterOption] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "FilterOptions":
        return cls(**{
            k: [FilterOption(**o) for o in data.get(k, [])]
            for k in ("nucleos", "lojas", "vendedores", "arquitetos")
        })


# ─── Envelope ───

SOURCE_NETWORK = "network"
SOURCE_CACHE = "cache"
SOURCE_STALE_CACHE = "stale_cache"
SOURCE_FALLBACK = "fallback"


@dataclass
class MetricResult:
    """Resultado de uma métrica e de onde ele veio."""
    data: Any
    source: str = SOURCE_NETWORK
    cache_key: str = ""
    error: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.source in (SOURCE_STALE_CACHE, SOURCE_FALLBACK)
