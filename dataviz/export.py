from __future__ import annotations
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence
import pandas as pd
from .classify import RULES
from .matrix import QUADRANT_LABELS, STARS, PERSISTERS, DISCONNECTED, AT_RISK
from .models import Column, ColumnType, Dataset, Insights, Row
from .utils import keyword_regex, rule_list

CAT_COL = "Categoría"
METRIC_COL = "Métrica"
VALUE_COL = "Valor"

SHEET_FULL = "Base Completa"
SHEET_METRICS = "Informe de Métricas"
SHEET_COMPLETIONS = "Finalizados"

NAME_KWS = rule_list(RULES, "name_keywords", ["nombre", "nombres", "first name"])
LAST_NAME_KWS = rule_list(RULES, "last_name_keywords", ["apellido", "apellidos", "last name"])
ID_HINT_KWS = ["dni", "documento", "id", "identificación", "rut", "cedula"]

_NAME_RE = keyword_regex(NAME_KWS, whole_word=True)
_LAST_NAME_RE = keyword_regex(LAST_NAME_KWS, whole_word=True)
_ID_HINT_RE = keyword_regex(ID_HINT_KWS)


def _blank() -> Dict[str, Any]:
    return {CAT_COL: None, METRIC_COL: None, VALUE_COL: None}

def _line(category: str, metric: str, value: Any) -> Dict[str, Any]:
    return {CAT_COL: category, METRIC_COL: metric, VALUE_COL: value}

def metrics_report_rows(dataset: Dataset, insights: Insights) -> List[Dict[str, Any]]:
    """
    Informe plano (Categoría / Métrica / Valor): resumen ejecutivo,
    distribución de progreso y, si existe, la matriz de compromiso.
    """
    avg = insights.metrics.avg_progress
    summary = "RESUMEN EJECUTIVO"
    rows: List[Dict[str, Any]] = [
        _line(summary, "Total Usuarios en Archivo", len(dataset.rows)),
        _line(summary, "Usuarios Válidos (Segmentados)", len(insights.filtered_rows)),
        _line(summary, "Promedio de Avance", f"{avg:.2f}%" if avg is not None else "N/A"),
        _line(summary, "Casos de Éxito (100%)", len(insights.completions)),
        _blank(),
    ]

    dist = "DISTRIBUCIÓN DE PROGRESO"
    rows.append(_line(dist, "Rango de Avance", "Cantidad de Usuarios"))
    for b in insights.histogram:
        rows.append(_line(dist, b.label, b.count))

    m = insights.engagement_matrix
    if m is not None:
        mat = "MATRIZ DE COMPROMISO"
        rows.append(_blank())
        rows.append(_line(mat, "Segmento Comportamental", "Cantidad"))
        rows.append(_line(mat, QUADRANT_LABELS[STARS], m.stars))
        rows.append(_line(mat, QUADRANT_LABELS[PERSISTERS], m.persisters))
        rows.append(_line(mat, QUADRANT_LABELS[DISCONNECTED], m.disconnected))
        rows.append(_line(mat, QUADRANT_LABELS[AT_RISK], m.at_risk))
    return rows

def rows_frame(headers: Sequence[str], rows: Sequence[Row]) -> pd.DataFrame:
    # volcado literal, columnas en el orden original
    return pd.DataFrame([[r.get(h) for h in headers] for r in rows], columns=list(headers))
# =========================

# Finalizados (100%)
# =========================
def _find_name_columns(columns: Sequence[Column]):
    name_col = next((c for c in columns if _NAME_RE.search(c.name.lower())), None)
    last_col = next((c for c in columns if _LAST_NAME_RE.search(c.name.lower())), None)
    return name_col, last_col

def _extra_column(columns: Sequence[Column]) -> Optional[Column]:
    # identificador (DNI...) y si no hay, la duración
    ident = next(
        (c for c in columns if c.type == ColumnType.IDENTIFIER and _ID_HINT_RE.search(c.name.lower())),
        None,
    )
    if ident is not None:
        return ident
    duration = next((c for c in columns if c.type == ColumnType.DURATION), None)
    if duration is None and columns:
        last = columns[-1]
        if isinstance(last.sample_value, (int, float)) and not isinstance(last.sample_value, bool):
            duration = last
    return duration

def completion_export_rows(dataset: Dataset, insights: Insights) -> List[Dict[str, Any]]:
    name_col, last_col = _find_name_columns(dataset.columns)
    extra = _extra_column(dataset.columns)
    out = []
    for user in insights.completions:
        row: Dict[str, Any] = {}
        if name_col is not None:
            row["Nombre"] = user.get(name_col.name)
        if last_col is not None:
            row["Apellido"] = user.get(last_col.name)
        if extra is not None:
            row[extra.name] = user.get(extra.name)
        row["Progreso"] = "100%"
        out.append(row)
    return out
# =========================

# Excel
# =========================
def _format_sheets(writer: pd.ExcelWriter, frames: Dict[str, pd.DataFrame], default_width: int = 18, max_width: int = 60) -> None:
    wb = writer.book
    fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})

    for sheet_name, df in frames.items():
        ws = writer.sheets.get(sheet_name)
        if ws is None:
            continue
        ws.freeze_panes(1, 0)
        if len(df.columns):
            ws.autofilter(0, 0, max(1, len(df)), len(df.columns) - 1)
        for col, name in enumerate(df.columns):
            ws.write(0, col, name, fmt_header)
            w = max(10, min(max_width, int(len(str(name)) * 1.2) + 6))
            ws.set_column(col, col, max(default_width, w))

def _frames_to_excel_bytes(frames: Dict[str, pd.DataFrame]) -> bytes:
    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        for sheet_name, df in frames.items():
            df.to_excel(writer, index=False, sheet_name=sheet_name)
        _format_sheets(writer, frames)
    return bio.getvalue()

def rows_to_excel_bytes(headers: Sequence[str], rows: Sequence[Row], sheet_name: str = SHEET_FULL) -> bytes:
    return _frames_to_excel_bytes({sheet_name: rows_frame(headers, rows)})

def export_report_to_excel_bytes(dataset: Dataset, insights: Insights) -> bytes:
    frames = {
        SHEET_FULL: rows_frame(dataset.headers, dataset.rows),
        SHEET_METRICS: pd.DataFrame(metrics_report_rows(dataset, insights), columns=[CAT_COL, METRIC_COL, VALUE_COL]),
    }
    return _frames_to_excel_bytes(frames)

def export_completions_to_excel_bytes(dataset: Dataset, insights: Insights) -> bytes:
    rows = completion_export_rows(dataset, insights)
    df = pd.DataFrame(rows) if rows else pd.DataFrame(columns=["Progreso"])
    return _frames_to_excel_bytes({SHEET_COMPLETIONS: df})
