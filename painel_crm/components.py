"""
Componentes HTML do painel.
Retornam strings HTML para uso com st.markdown(html, unsafe_allow_html=True).
"""

from html import escape

from painel_crm.models.metric_models import SOURCE_FALLBACK, MetricData, MetricResult


def painel_header(periodo: str) -> str:
    """Header principal com o período selecionado."""
    return f"""
    <div class="painel-header">
        <h1>Painel Comercial</h1>
        <div class="meta">{escape(periodo)}</div>
    </div>
    """


def section_header(title: str, subtitle: str = None) -> str:
    sub_html = f'<div class="sub">{escape(subtitle)}</div>' if subtitle else ""
    return f"""
    <div class="section-hdr">
        <h2>{escape(title)}</h2>
        {sub_html}
    </div>
    """


def funnel_card(stage: MetricData, color: str, show_percentage: bool = True) -> str:
    """Cartão de um estágio do funil."""
    pct = f'<div class="pct">{escape(stage.percentage)} {escape(stage.sublabel)}</div>' if show_percentage else ""
    return f"""
    <div class="funnel-card" style="--stage-color: {color}">
        <div class="label">{escape(stage.label)}</div>
        <div class="count">{stage.count}</div>
        {pct}
    </div>
    """


def degraded_banner(result: MetricResult) -> str:
    """Aviso de dados em cache expirado ou fallback; vazio se os dados são atuais."""
    if not result.is_degraded:
        return ""
    if result.source == SOURCE_FALLBACK:
        msg = "API indisponível: exibindo totais parciais."
    else:
        msg = "API indisponível: exibindo dados de uma consulta anterior."
    return f'<div class="stale-banner">{msg}</div>'
