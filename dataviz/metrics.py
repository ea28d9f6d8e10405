from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple
import numpy as np
from .models import Column, ColumnType, Correction, CorrectionKind, HistogramBucket, Metrics, Row
from .utils import parse_number

logger = logging.getLogger(__name__)

# Fallback posicional: columna F para progreso y la última para duración
MIN_COLUMNS_FOR_FALLBACK = 6
FALLBACK_PROGRESS_INDEX = 5

COMPLETION_THRESHOLD = 100.0
LOW_PROGRESS_THRESHOLD = 25.0

# (etiqueta, límite inferior inclusivo); el último tramo es >= 100
HISTOGRAM_BUCKETS = [
    ("0-24%", None),
    ("25-49%", 25.0),
    ("50-74%", 50.0),
    ("75-99%", 75.0),
    ("100%", 100.0),
]


def resolve_columns(
    columns: Sequence[Column],
    positional_fallback: bool = True,
) -> Tuple[Optional[Column], Optional[Column], List[Correction]]:
    corrections: List[Correction] = []
    progress = next((c for c in columns if c.type == ColumnType.PERCENTAGE), None)
    duration = next((c for c in columns if c.type == ColumnType.DURATION), None)

    can_fallback = positional_fallback and len(columns) >= MIN_COLUMNS_FOR_FALLBACK

    if progress is None and can_fallback:
        progress = columns[FALLBACK_PROGRESS_INDEX]
        corrections.append(Correction(
            CorrectionKind.PROGRESS_FALLBACK,
            f'Usando Columna F ("{progress.name}") como Progreso',
        ))
    if duration is None and can_fallback:
        duration = columns[-1]
        corrections.append(Correction(
            CorrectionKind.DURATION_FALLBACK,
            f'Usando última columna ("{duration.name}") como Duración',
        ))

    if progress is None:
        corrections.append(Correction(CorrectionKind.PROGRESS_MISSING, "Sin columna de progreso: no se calculan finalizados ni promedio"))
    if duration is None:
        corrections.append(Correction(CorrectionKind.DURATION_MISSING, "Sin columna de duración: no se calcula la matriz de compromiso"))

    for c in corrections:
        logger.info("%s: %s", c.kind.value, c.detail)
    return progress, duration, corrections

def find_result_column(columns: Sequence[Column], progress: Optional[Column]) -> Optional[Column]:
    # segunda columna de porcentaje (p.ej. nota final), distinta de la de progreso
    for c in columns:
        if c.type == ColumnType.PERCENTAGE and (progress is None or c.name != progress.name):
            return c
    return None

def normalized_value(row: Row, column: Optional[Column]) -> float:
    if column is None:
        return 0.0
    v = parse_number(row.get(column.name)) or 0.0
    # porcentaje expresado como fracción 0..1
    if column.type == ColumnType.PERCENTAGE and 0 < v <= 1:
        return v * 100
    return v

def normalized_values(rows: Sequence[Row], column: Optional[Column]) -> np.ndarray:
    return np.array([normalized_value(r, column) for r in rows], dtype=float)

def _mean(values: np.ndarray) -> float:
    if values.size == 0:
        return 0.0
    return float(values.mean())

def completions(rows: Sequence[Row], progress: Optional[Column]) -> Tuple[Row, ...]:
    if progress is None:
        return tuple()
    return tuple(r for r in rows if normalized_value(r, progress) >= COMPLETION_THRESHOLD)

def bucket_index(value: float) -> int:
    idx = 0
    for i, (_, lower) in enumerate(HISTOGRAM_BUCKETS):
        if lower is not None and value >= lower:
            idx = i
    return idx

def progress_histogram(rows: Sequence[Row], progress: Optional[Column]) -> Tuple[HistogramBucket, ...]:
    counts = [0] * len(HISTOGRAM_BUCKETS)
    for r in rows:
        counts[bucket_index(normalized_value(r, progress))] += 1

    n = len(rows)
    return tuple(
        HistogramBucket(
            label=label,
            count=cnt,
            percentage=(cnt / n) * 100 if n > 0 else 0.0,
        )
        for (label, _), cnt in zip(HISTOGRAM_BUCKETS, counts)
    )

def compute_metrics(
    rows: Sequence[Row],
    progress: Optional[Column],
    duration: Optional[Column],
    result: Optional[Column] = None,
) -> Metrics:
    avg_progress = None
    avg_high = 0.0
    avg_low = 0.0
    avg_result = None

    if progress is not None:
        p = normalized_values(rows, progress)
        avg_progress = _mean(p)

        if duration is not None:
            d = normalized_values(rows, duration)
            avg_high = _mean(d[p >= COMPLETION_THRESHOLD])
            avg_low = _mean(d[p < LOW_PROGRESS_THRESHOLD])

    if result is not None:
        avg_result = _mean(normalized_values(rows, result))

    return Metrics(
        avg_progress=avg_progress,
        avg_duration_high=avg_high,
        avg_duration_low=avg_low,
        avg_result=avg_result,
    )
