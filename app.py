from __future__ import annotations
import json
from datetime import date
import pandas as pd
import streamlit as st
from dataviz.ingest import IngestError, load_table_from_upload
from dataviz.insights import analyze
from dataviz.export import (completion_export_rows, export_completions_to_excel_bytes, export_report_to_excel_bytes)
from dataviz.log import setup_logging
from dataviz.matrix import QUADRANT_LABELS, STARS, PERSISTERS, DISCONNECTED, AT_RISK
from dataviz.prompt import SHORTCUT_PROMPTS, build_system_prompt, chat_messages

logger = setup_logging()

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

st.set_page_config(page_title="DataViz AI", layout="wide")
st.title("DataViz AI")
st.caption("Analítica inteligente para decisiones educativas y sociales de alto impacto.")
# =========================

# Helpers
# =========================
def _pct(part: int, total: int) -> str:
    return f"{(part / total) * 100:.1f}" if total > 0 else "0"

def _fmt_num(v, suffix: str = "") -> str:
    return f"{v:.1f}{suffix}" if v is not None else "N/A"
# =========================

# Upload
# =========================
upload = st.file_uploader("Carga tus registros para comenzar (CSV/XLSX)", type=["csv", "xlsx"])

if not upload:
    st.info("Carga tus registros para comenzar.")
    st.stop()

try:
    headers, raw_rows = load_table_from_upload(upload)
except IngestError as e:
    logger.warning("Error de ingesta en %s: %s", upload.name, e)
    st.error(f"Error de Ingesta: {e}")
    st.stop()

dataset, insights = analyze(headers, raw_rows)

if insights.corrections:
    st.caption(" · ".join(str(c) for c in insights.corrections))
# =========================

# Tarjetas
# =========================
total = insights.total_rows
registered = len(insights.filtered_rows)
unregistered = insights.excluded_count

c1, c2, c3 = st.columns(3)
with c1:
    st.metric("Total de Usuarios", total)
with c2:
    st.metric("Usuarios Registrados", registered, f"{_pct(registered, total)}%", delta_color="off")
with c3:
    st.metric("Usuarios No Registrados", unregistered, f"{_pct(unregistered, total)}%", delta_color="off")

c4, c5 = st.columns(2)
with c4:
    st.metric("Completaron el curso (100%)", len(insights.completions))
with c5:
    st.metric("Progreso Promedio (Registrados)", _fmt_num(insights.metrics.avg_progress, "%"))
# =========================

# Distribución + matriz
# =========================
left, right = st.columns(2)
with left:
    st.subheader("Distribución de Progreso")
    st.caption("Segmentación de avance basada en registros activos.")
    hist_df = pd.DataFrame(
        [{"Rango": b.label, "Usuarios": b.count, "%": round(b.percentage, 1)} for b in insights.histogram]
    )
    st.bar_chart(hist_df.set_index("Rango")["Usuarios"])
    st.dataframe(hist_df, width="stretch", hide_index=True)

with right:
    st.subheader("Matriz de Compromiso")
    matrix = insights.engagement_matrix
    if matrix is None:
        st.warning("No se encontró columna de duración o de progreso: la matriz no se calcula.")
    else:
        st.caption(
            f"Medianas: progreso {matrix.median_progress:.1f}% · duración {matrix.median_duration:.1f}"
        )
        m1, m2 = st.columns(2)
        with m1:
            st.metric(QUADRANT_LABELS[STARS], matrix.stars)
            st.metric(QUADRANT_LABELS[DISCONNECTED], matrix.disconnected)
        with m2:
            st.metric(QUADRANT_LABELS[PERSISTERS], matrix.persisters)
            st.metric(QUADRANT_LABELS[AT_RISK], matrix.at_risk)

    d1, d2 = st.columns(2)
    with d1:
        st.metric("Duración media (100%)", _fmt_num(insights.metrics.avg_duration_high))
    with d2:
        st.metric("Duración media (< 25%)", _fmt_num(insights.metrics.avg_duration_low))
    if insights.metrics.avg_result is not None:
        st.metric("Resultado promedio", _fmt_num(insights.metrics.avg_result, "%"))
# =========================

# Columnas detectadas
# =========================
with st.expander("Columnas detectadas", expanded=False):
    st.dataframe(
        pd.DataFrame([{"Columna": c.name, "Original": c.original_name, "Tipo": c.type.value, "Ejemplo": str(c.sample_value)} for c in dataset.columns]),
        width="stretch",
        hide_index=True,
    )
# =========================

# Finalizados
# =========================
st.subheader("Usuarios que completaron el curso")
done_rows = completion_export_rows(dataset, insights)
if done_rows:
    st.dataframe(pd.DataFrame(done_rows[:10]), width="stretch", hide_index=True)
    st.caption(f"Viendo los primeros {min(10, len(done_rows))} de {len(done_rows)} registros.")
    st.download_button(
        "Descargar finalizados (Excel)",
        data=export_completions_to_excel_bytes(dataset, insights),
        file_name="usuarios_finalizados_100.xlsx",
        mime=XLSX_MIME,
    )
else:
    st.info("Ningún usuario registrado alcanzó el 100%.")
# =========================

# Exportación + contexto IA
# =========================
st.divider()
st.download_button(
    "Exportar Excel Completo",
    data=export_report_to_excel_bytes(dataset, insights),
    file_name=f"DataViz_Reporte_Completo_{date.today().isoformat()}.xlsx",
    mime=XLSX_MIME,
    type="primary",
)

with st.expander("Contexto para el analista IA", expanded=False):
    prompt = build_system_prompt(dataset, insights)
    st.code(prompt, language="text")
    st.download_button("Descargar contexto", data=prompt.encode("utf-8"), file_name="contexto_ia.txt", mime="text/plain")

    st.markdown("**Preguntas sugeridas**")
    sc_cols = st.columns(len(SHORTCUT_PROMPTS))
    for col, (label, text) in zip(sc_cols, SHORTCUT_PROMPTS):
        with col:
            if st.button(label, key=f"shortcut_{label}"):
                st.session_state["chat_question"] = text

    question = st.text_input("Pregunta para el analista", key="chat_question")
    if question.strip():
        messages = chat_messages(dataset, insights, question)
        st.download_button(
            "Descargar mensajes (JSON)",
            data=json.dumps(messages, ensure_ascii=False, indent=2).encode("utf-8"),
            file_name="mensajes_chat.json",
            mime="application/json",
        )
