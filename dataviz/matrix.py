from __future__ import annotations
from typing import Iterable, Optional, Sequence
import numpy as np
from .metrics import normalized_values
from .models import Column, EngagementMatrix, Row

STARS = "stars"
PERSISTERS = "persisters"
DISCONNECTED = "disconnected"
AT_RISK = "at_risk"

QUADRANT_LABELS = {
    STARS: "Estrellas (Alta Eficiencia)",
    PERSISTERS: "Persistentes (Alto Esfuerzo)",
    DISCONNECTED: "Desconectados",
    AT_RISK: "En Riesgo (Foco Crítico)",
}


def median(values: Iterable[float]) -> float:
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))

def quadrant(progress: float, duration: float, median_progress: float, median_duration: float) -> str:
    # empate en duración -> lado de bajo esfuerzo (stars / disconnected)
    if progress >= median_progress:
        return STARS if duration <= median_duration else PERSISTERS
    return DISCONNECTED if duration <= median_duration else AT_RISK

def engagement_matrix(
    rows: Sequence[Row],
    progress: Optional[Column],
    duration: Optional[Column],
) -> Optional[EngagementMatrix]:
    """
    Matriz de compromiso: cada fila cae en exactamente un cuadrante según su
    progreso y duración frente a las medianas del conjunto filtrado.
    Sin columna de progreso o de duración no hay matriz.
    """
    if progress is None or duration is None:
        return None

    p = normalized_values(rows, progress)
    d = normalized_values(rows, duration)
    med_p = median(p)
    med_d = median(d)

    counts = {STARS: 0, PERSISTERS: 0, DISCONNECTED: 0, AT_RISK: 0}
    for pv, dv in zip(p.tolist(), d.tolist()):
        counts[quadrant(pv, dv, med_p, med_d)] += 1

    return EngagementMatrix(
        stars=counts[STARS],
        persisters=counts[PERSISTERS],
        at_risk=counts[AT_RISK],
        disconnected=counts[DISCONNECTED],
        median_progress=med_p,
        median_duration=med_d,
    )
