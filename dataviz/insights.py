from __future__ import annotations
import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from .classify import RULES, classify_columns
from .matrix import engagement_matrix
from .metrics import (completions, compute_metrics, find_result_column, progress_histogram, resolve_columns)
from .models import Dataset, Insights, Row
from .segment import filter_valid_rows
from .utils import make_unique, normalize

logger = logging.getLogger(__name__)


def normalize_rows(
    headers: Sequence[Any],
    raw_rows: Sequence[Mapping[Any, Any]],
) -> Tuple[List[str], List[Row]]:
    """
    Encabezados y celdas de texto reparados (encoding) una sola vez.
    Cada fila resultante tiene clave para todas las columnas (None si falta)
    y es de solo lectura.
    """
    clean_headers = make_unique([normalize(h) if h is not None else "" for h in headers])
    rows: List[Row] = []
    for raw in raw_rows:
        row: Dict[str, Any] = {}
        for orig, clean in zip(headers, clean_headers):
            v = raw.get(orig)
            if isinstance(v, str):
                v = normalize(v)
                if v == "":
                    v = None
            row[clean] = v
        rows.append(MappingProxyType(row))
    return clean_headers, rows

def build_dataset(headers: Sequence[Any], raw_rows: Sequence[Mapping[Any, Any]]) -> Dataset:
    clean_headers, rows = normalize_rows(headers, raw_rows)
    originals = ["" if h is None else str(h) for h in headers]
    columns = classify_columns(clean_headers, rows, original_names=originals)
    return Dataset(rows=tuple(rows), columns=columns)

def compute_insights(dataset: Dataset, positional_fallback: Optional[bool] = None) -> Insights:
    """
    classify -> filter -> aggregate. Se recalcula todo por cada dataset;
    no guarda estado entre llamadas.
    """
    if positional_fallback is None:
        positional_fallback = bool(RULES.get("positional_hints", True)) if isinstance(RULES, dict) else True

    columns = dataset.columns
    progress, duration, corrections = resolve_columns(columns, positional_fallback=positional_fallback)
    result = find_result_column(columns, progress)

    filtered, seg_notes = filter_valid_rows(dataset.rows, columns)
    corrections.extend(seg_notes)

    insights = Insights(
        filtered_rows=filtered,
        completions=completions(filtered, progress),
        histogram=progress_histogram(filtered, progress),
        metrics=compute_metrics(filtered, progress, duration, result),
        engagement_matrix=engagement_matrix(filtered, progress, duration),
        corrections=tuple(corrections),
        total_rows=len(dataset.rows),
        progress_column=progress.name if progress else None,
        duration_column=duration.name if duration else None,
    )
    logger.info(
        "Insights: %d filas, %d válidas, %d finalizados, matriz=%s",
        insights.total_rows,
        len(insights.filtered_rows),
        len(insights.completions),
        "sí" if insights.engagement_matrix else "no",
    )
    return insights

def analyze(headers: Sequence[Any], raw_rows: Sequence[Mapping[Any, Any]]) -> Tuple[Dataset, Insights]:
    dataset = build_dataset(headers, raw_rows)
    return dataset, compute_insights(dataset)
