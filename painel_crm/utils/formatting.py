"""
Utilitários de formatação para valores do painel (moeda brasileira e percentuais).
"""

ZERO_PERCENT = "0%"


def format_brl(value: float) -> str:
    """Formata um número como Real brasileiro (R$ 150.000,50)."""
    if value >= 0:
        return f"R$ {value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"-R$ {abs(value):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def format_percent(value: float, decimals: int = 1) -> str:
    """Formata um número como percentual (ex: 23.5%)."""
    return f"{value:.{decimals}f}%"


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator × 100, ou 0.0 quando o denominador é zero."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def percent_label(numerator: float, denominator: float) -> str:
    """Percentual relativo ao denominador; "0%" quando o denominador é zero."""
    if not denominator:
        return ZERO_PERCENT
    return format_percent(numerator / denominator * 100)


def format_delta_pp(delta: float) -> str:
    """Variação em pontos percentuais (ex: +1.2pp)."""
    sign = "+" if delta >= 0 else ""
    return f"{sign}{delta:.1f}pp"
