"""
Tema visual do painel CRM: tokens de cor, CSS e template Plotly.
"""

# ─── Cores ───

COLORS = {
    "bg_base": "#f7f8fa",
    "bg_surface": "#ffffff",
    "border": "#e5e7eb",
    "text_primary": "#111827",
    "text_secondary": "#4b5563",
    "text_muted": "#9ca3af",
    "primary": "#10b981",
    "primary_dim": "rgba(16,185,129,0.10)",
    "success": "#10b981",
    "danger": "#ef4444",
    "warning": "#856404",
    "warning_bg": "#fff3cd",
    "info": "#3b82f6",
}

CHART_COLORS = [
    COLORS["primary"],
    COLORS["info"],
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#14b8a6",
    "#64748b",
]

# Um tom por estágio do funil
FUNNEL_COLORS = {
    "created": "#64748b",
    "sent": COLORS["info"],
    "in_approval": "#f59e0b",
    "approved": COLORS["success"],
    "rejected": COLORS["danger"],
    "released": "#8b5cf6",
}


# ─── Plotly ───

PLOTLY_TEMPLATE = {
    "layout": {
        "paper_bgcolor": "rgba(0,0,0,0)",
        "plot_bgcolor": "rgba(0,0,0,0)",
        "font": {"family": "Inter, sans-serif", "color": COLORS["text_secondary"], "size": 12},
        "xaxis": {"gridcolor": COLORS["border"], "linecolor": COLORS["border"]},
        "yaxis": {"gridcolor": COLORS["border"], "linecolor": COLORS["border"]},
        "legend": {"bgcolor": "rgba(0,0,0,0)"},
        "colorway": CHART_COLORS,
        "margin": {"l": 10, "r": 10, "t": 30, "b": 10},
    }
}


# ─── CSS ───

CUSTOM_CSS = """
<style>
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap');

html, body, [data-testid="stAppViewContainer"] {
    font-family: 'Inter', sans-serif !important;
    background: """ + COLORS["bg_base"] + """;
}

.block-container {
    padding-top: 1.5rem !important;
    max-width: 1280px !important;
}

[data-testid="stMetric"] {
    background: """ + COLORS["bg_surface"] + """;
    border: 1px solid """ + COLORS["border"] + """;
    border-radius: 10px;
    padding: 16px;
}
[data-testid="stMetricLabel"] {
    font-size: 0.75rem !important;
    font-weight: 600 !important;
    color: """ + COLORS["text_muted"] + """ !important;
    text-transform: uppercase !important;
}

.painel-header h1 {
    font-weight: 700 !important;
    font-size: 1.6rem !important;
    color: """ + COLORS["text_primary"] + """ !important;
    margin: 0 !important;
}
.painel-header .meta {
    font-size: 0.8rem;
    color: """ + COLORS["text_muted"] + """;
}

.section-hdr {
    margin: 1.25rem 0 0.75rem 0;
    padding-bottom: 0.4rem;
    border-bottom: 2px solid """ + COLORS["primary_dim"] + """;
}
.section-hdr h2 {
    font-size: 1.15rem !important;
    font-weight: 700 !important;
    color: """ + COLORS["text_primary"] + """ !important;
    margin: 0 !important;
}
.section-hdr .sub {
    font-size: 0.8rem;
    color: """ + COLORS["text_muted"] + """;
}

.stale-banner {
    background: """ + COLORS["warning_bg"] + """;
    color: """ + COLORS["warning"] + """;
    border-radius: 8px;
    padding: 10px 14px;
    margin-bottom: 10px;
    font-size: 0.85rem;
}

.funnel-card {
    background: """ + COLORS["bg_surface"] + """;
    border: 1px solid """ + COLORS["border"] + """;
    border-top: 3px solid var(--stage-color);
    border-radius: 10px;
    padding: 14px;
    text-align: center;
}
.funnel-card .count {
    font-size: 1.6rem;
    font-weight: 700;
    color: """ + COLORS["text_primary"] + """;
}
.funnel-card .label {
    font-size: 0.75rem;
    font-weight: 600;
    text-transform: uppercase;
    color: """ + COLORS["text_secondary"] + """;
}
.funnel-card .pct {
    font-size: 0.8rem;
    color: """ + COLORS["text_muted"] + """;
}
</style>
"""
