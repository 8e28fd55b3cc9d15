"""
Painel Comercial do CRM
Funil de orçamentos, margem, performance comercial e TOP 10.

Executar:
    streamlit run painel_crm/app.py
"""

import sys
from pathlib import Path

# Garante que o diretório raiz do projeto está no sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from painel_crm.api.crm_client import CrmClient
from painel_crm.config import (
    CACHE_DIR,
    COLLECTION_ARQUITETO,
    COLLECTION_CLIENTE,
    COLLECTION_LOJA,
    COLLECTION_VENDEDOR,
    QUERY_CACHE_TTL_MINUTES,
)
from painel_crm.components import degraded_banner, funnel_card, painel_header, section_header
from painel_crm.errors import DashboardError
from painel_crm.models.crm_models import STATUS_FILTERS, DateRange, Filtros
from painel_crm.models.metric_models import FUNNEL_STAGES
from painel_crm.services.aggregation_service import DashboardAggregator
from painel_crm.services.filters_service import (
    FUNNEL_CLOSED,
    FUNNEL_OPEN,
    date_range_for_preset,
)
from painel_crm.services.margin_service import total_of_groups
from painel_crm.styles import CUSTOM_CSS, FUNNEL_COLORS, PLOTLY_TEMPLATE
from painel_crm.utils.caching import FileStore, ResultCache, flush_on_reload
from painel_crm.utils.epoch import RequestEpoch
from painel_crm.utils.formatting import format_brl, format_delta_pp, format_percent
from painel_crm.utils.logger import setup_logger

logger = setup_logger(__name__)


# ═══════════════════════════════════════════════════════
# PAGE CONFIG
# ═══════════════════════════════════════════════════════

st.set_page_config(page_title="Painel Comercial", layout="wide")
st.markdown(CUSTOM_CSS, unsafe_allow_html=True)


# ═══════════════════════════════════════════════════════
# AGREGADOR (um por processo)
# ═══════════════════════════════════════════════════════

@st.cache_resource(show_spinner=False)
def get_aggregator() -> DashboardAggregator:
    """Cria cliente e cache; limpa entradas expiradas na carga do módulo."""
    cache = ResultCache(FileStore(CACHE_DIR))
    cache.sweep_expired()
    return DashboardAggregator(CrmClient(), cache)


aggregator = get_aggregator()
flush_on_reload(aggregator.cache, st.session_state)

if "epoch" not in st.session_state:
    st.session_state["epoch"] = RequestEpoch()
epoch: RequestEpoch = st.session_state["epoch"]


def load_metric(label: str, fn, *args, **kwargs):
    """Chama o agregador; erro sem cache nem fallback vira estado de erro na tela."""
    try:
        return fn(*args, **kwargs)
    except DashboardError as e:
        logger.error("Métrica indisponível: %s", e)
        st.error(f"Não foi possível carregar {label}. Tente novamente em instantes.")
        return None


# ═══════════════════════════════════════════════════════
# SIDEBAR: FILTROS
# ═══════════════════════════════════════════════════════

PRESET_LABELS = {
    "last7days": "Últimos 7 dias",
    "thisMonth": "Este mês",
    "thisQuarter": "Últimos 3 meses",
    "thisYear": "Este ano",
    "last30days": "Últimos 30 dias",
    "custom": "Personalizado",
}

with st.sidebar:
    st.title("Filtros")

    preset = st.selectbox(
        "Período", list(PRESET_LABELS), index=4, format_func=PRESET_LABELS.get
    )
    if preset == "custom":
        default = date_range_for_preset("last30days")
        picked = st.date_input("Intervalo", value=(default.start_day, default.end_day))
        if isinstance(picked, (list, tuple)) and len(picked) == 2:
            date_range = DateRange(picked[0], picked[1])
        else:
            date_range = default
    else:
        date_range = date_range_for_preset(preset)

    force = st.button("Atualizar Dados", use_container_width=True)
    if force:
        for collection in (COLLECTION_VENDEDOR, COLLECTION_ARQUITETO, COLLECTION_CLIENTE, COLLECTION_LOJA):
            load_metric(f"a lista de {collection}", aggregator.refresh_reference, collection)

    options_result = load_metric(
        "as opções de filtro", aggregator.filter_options, date_range, force_refresh=force
    )
    options = options_result.data if options_result else None

    def _select(label: str, opts) -> str | None:
        ids = [None] + [o.id for o in opts]
        names = {o.id: o.name for o in opts}
        return st.selectbox(label, ids, format_func=lambda i: "Todos" if i is None else names.get(i, i))

    nucleo = _select("Núcleo", options.nucleos if options else [])
    loja = _select("Loja", options.lojas if options else [])
    vendedores = options.vendedores if options else []
    if nucleo:
        vendedores = [v for v in vendedores if not v.nucleos or nucleo in v.nucleos]
    vendedor = _select("Vendedor", vendedores)
    arquiteto = _select("Arquiteto", options.arquitetos if options else [])
    status = st.selectbox("Status do orçamento", [None, *STATUS_FILTERS], format_func=lambda s: s or "Todos")

    st.divider()
    funnel_mode = st.radio(
        "Funil",
        (FUNNEL_CLOSED, FUNNEL_OPEN),
        format_func={FUNNEL_CLOSED: "Fechado (criados no período)", FUNNEL_OPEN: "Aberto (até o fim do período)"}.get,
    )
    compare = st.checkbox("Comparar com período anterior", value=False)
    st.caption(f"Cache: {QUERY_CACHE_TTL_MINUTES} minutos")

filtros = Filtros(
    date_range=date_range,
    nucleo=nucleo,
    loja=loja,
    vendedor=vendedor,
    arquiteto=arquiteto,
    status=status,
)
# a época fica na sessão: se um rerun com outro filtro começar enquanto esta
# execução ainda carrega, os resultados desta execução são descartados
token = epoch.begin(filtros)

st.markdown(
    painel_header(f"{date_range.start_day:%d/%m/%Y} a {date_range.end_day:%d/%m/%Y}"),
    unsafe_allow_html=True,
)


# ═══════════════════════════════════════════════════════
# FUNIL
# ═══════════════════════════════════════════════════════

st.markdown(section_header("Funil de Orçamentos"), unsafe_allow_html=True)

with st.spinner("Carregando funil..."):
    funnel = epoch.accept(token, load_metric(
        "o funil", aggregator.funnel, filtros, mode=funnel_mode,
        compare_previous=compare, force_refresh=force,
    ))

if funnel:
    st.markdown(degraded_banner(funnel), unsafe_allow_html=True)
    f = funnel.data
    cols = st.columns(len(FUNNEL_STAGES))
    for col, stage in zip(cols, FUNNEL_STAGES):
        data = getattr(f.current, stage)
        with col:
            st.markdown(
                funnel_card(data, FUNNEL_COLORS[stage], show_percentage=stage != "created"),
                unsafe_allow_html=True,
            )
            delta = f.deltas.get(stage)
            if delta is not None:
                st.caption(f"{delta.value:+d} ({format_percent(delta.percentage)}) vs anterior")
    st.caption(f"{f.current.projects} projetos com orçamento no período")


# ═══════════════════════════════════════════════════════
# MARGEM
# ═══════════════════════════════════════════════════════

st.markdown(section_header("Margem e Rentabilidade"), unsafe_allow_html=True)

with st.spinner("Calculando margem..."):
    margin = epoch.accept(token, load_metric(
        "a margem", aggregator.margin, filtros, force_refresh=force
    ))


def margin_table(groups, label: str) -> pd.DataFrame:
    df = pd.DataFrame(
        [{label: g.name, "Receita": g.receita, "Lucro": g.lucro, "Margem": g.margem} for g in groups]
    )
    if df.empty:
        return df
    total = total_of_groups(groups)
    df.loc[len(df)] = {label: "Total", "Receita": total.receita, "Lucro": total.lucro, "Margem": total.margem}
    df["Receita"] = df["Receita"].map(format_brl)
    df["Lucro"] = df["Lucro"].map(format_brl)
    df["Margem"] = df["Margem"].map(format_percent)
    return df


if margin:
    st.markdown(degraded_banner(margin), unsafe_allow_html=True)
    m = margin.data
    prev = m.previous.geral if m.previous else None
    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric(
            "Receita",
            format_brl(m.geral.receita),
            delta=format_brl(m.geral.receita - prev.receita) if prev else None,
        )
    with c2:
        st.metric(
            "Lucro",
            format_brl(m.geral.lucro),
            delta=format_brl(m.geral.lucro - prev.lucro) if prev else None,
        )
    with c3:
        st.metric(
            "Margem",
            format_percent(m.geral.margem),
            delta=format_delta_pp(m.geral.margem - prev.margem) if prev else None,
        )

    t1, t2 = st.tabs(["Por Núcleo", "Por Loja"])
    with t1:
        st.dataframe(margin_table(m.nucleos, "Núcleo"), hide_index=True, use_container_width=True)
    with t2:
        st.dataframe(margin_table(m.lojas, "Loja"), hide_index=True, use_container_width=True)


# ═══════════════════════════════════════════════════════
# PERFORMANCE COMERCIAL
# ═══════════════════════════════════════════════════════

st.markdown(section_header("Performance Comercial", "Top 5 do período"), unsafe_allow_html=True)

with st.spinner("Carregando performance..."):
    performance = epoch.accept(token, load_metric(
        "a performance comercial", aggregator.performance, filtros, force_refresh=force
    ))


def trend_chart(items, value_label: str) -> go.Figure:
    fig = go.Figure()
    for item in items:
        fig.add_trace(go.Scatter(
            x=list(range(1, len(item.trend) + 1)),
            y=item.trend,
            mode="lines+markers",
            name=item.name,
            hovertemplate=f"<b>{item.name}</b><br>{value_label}: %{{y:,.2f}}<extra></extra>",
        ))
    fig.update_layout(
        template=PLOTLY_TEMPLATE,
        height=300,
        xaxis=dict(title="Fatia do período", dtick=1),
        yaxis=dict(title=value_label),
        hovermode="x unified",
    )
    return fig


if performance:
    st.markdown(degraded_banner(performance), unsafe_allow_html=True)
    p = performance.data
    col_v, col_a = st.columns(2)
    with col_v:
        st.subheader("Vendedores (receita)")
        for i, item in enumerate(p.vendedores, 1):
            st.write(f"{i}. **{item.name}**: {format_brl(item.value)}")
        if p.vendedores:
            st.plotly_chart(trend_chart(p.vendedores, "Receita"), use_container_width=True)
        else:
            st.caption("Sem vendas no período")
    with col_a:
        st.subheader("Arquitetos (projetos)")
        for i, item in enumerate(p.arquitetos, 1):
            st.write(f"{i}. **{item.name}**: {item.value:.0f} projetos")
        if p.arquitetos:
            st.plotly_chart(trend_chart(p.arquitetos, "Projetos"), use_container_width=True)
        else:
            st.caption("Sem projetos no período")


# ═══════════════════════════════════════════════════════
# TOP 10
# ═══════════════════════════════════════════════════════

st.markdown(section_header("TOP 10"), unsafe_allow_html=True)

with st.spinner("Carregando rankings..."):
    top10 = epoch.accept(token, load_metric(
        "os rankings", aggregator.top10, filtros, force_refresh=force
    ))


def ranking_chart(items) -> go.Figure:
    fig = go.Figure(go.Bar(
        y=[i.name for i in items][::-1],
        x=[i.value for i in items][::-1],
        orientation="h",
        text=[format_brl(i.value) for i in items][::-1],
        textposition="auto",
        hovertemplate="<b>%{y}</b><br>R$ %{x:,.2f}<extra></extra>",
    ))
    fig.update_layout(template=PLOTLY_TEMPLATE, height=380, showlegend=False)
    return fig


if top10:
    st.markdown(degraded_banner(top10), unsafe_allow_html=True)
    t = top10.data
    col_c, col_p = st.columns(2)
    with col_c:
        st.subheader("Clientes")
        if t.clientes:
            st.plotly_chart(ranking_chart(t.clientes), use_container_width=True)
        else:
            st.caption("Sem dados")
    with col_p:
        st.subheader("Produtos")
        if t.produtos:
            st.plotly_chart(ranking_chart(t.produtos), use_container_width=True)
            df_prod = pd.DataFrame(
                [{"Produto": i.name, "Quantidade": i.quantidade, "Valor": format_brl(i.value)} for i in t.produtos]
            )
            st.dataframe(df_prod, hide_index=True, use_container_width=True)
        else:
            st.caption("Sem dados")
