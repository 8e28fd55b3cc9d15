"""
Exceções do painel CRM.

Hierarquia:
    DashboardError
    ├── NetworkError            (falha de rede / resposta não-2xx)
    ├── ParseError              (JSON ou envelope malformado, payload de cache inválido)
    ├── PartialResultError      (lotes por ID com falha onde o dado precisa estar completo)
    └── MetricUnavailableError  (nenhum dado disponível para o painel)

Join sem alvo (orçamento sem projeto, item sem orçamento) não é erro:
o registro é simplesmente ignorado.
"""


class DashboardError(Exception):
    """Base para todos os erros do painel."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


class NetworkError(DashboardError):
    """Requisição falhou (conexão, timeout ou status não-2xx)."""

    def __init__(self, message: str, status_code: int = None, url: str = None):
        self.status_code = status_code
        self.url = url
        super().__init__(
            message,
            code="NETWORK_ERROR",
            details={"status_code": status_code, "url": url},
        )


class ParseError(DashboardError):
    """Resposta ou payload de cache com formato inesperado."""

    def __init__(self, message: str, source: str = None):
        self.source = source
        super().__init__(message, code="PARSE_ERROR", details={"source": source})


class PartialResultError(DashboardError):
    """Busca em lotes voltou incompleta onde a métrica exige todos os registros."""

    def __init__(self, collection: str, missing: int):
        self.collection = collection
        self.missing = missing
        super().__init__(
            f"{missing} IDs de {collection} em lotes com falha",
            code="PARTIAL_RESULT",
            details={"collection": collection, "missing": missing},
        )


class MetricUnavailableError(DashboardError):
    """Falha na busca sem cache nem fallback: o painel mostra estado de erro."""

    def __init__(self, metric: str, cause: Exception = None):
        self.metric = metric
        msg = f"Não foi possível carregar '{metric}'"
        if cause:
            msg += f": {cause}"
        super().__init__(msg, code="METRIC_UNAVAILABLE", details={"metric": metric})
