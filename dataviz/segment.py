from __future__ import annotations
import logging
from typing import Any, List, Optional, Sequence, Tuple
from .models import Column, Correction, CorrectionKind, Row
from .utils import keyword_regex, load_json, rule_list, rules_path

logger = logging.getLogger(__name__)

RULES = load_json(rules_path(), {})

STATUS_KWS = rule_list(RULES, "status_keywords", ["registrado", "inscrito", "estado", "status", "registered", "enrolled"])
TRUTHY_TOKENS = frozenset(
    t.lower() for t in rule_list(RULES, "truthy_tokens", ["sí", "si", "yes", "true", "registrado"])
)

_STATUS_RE = keyword_regex(STATUS_KWS)


def find_status_column(columns: Sequence[Column]) -> Optional[Column]:
    # primera columna cuyo nombre sugiere estado de registro/inscripción
    for c in columns:
        if _STATUS_RE.search(c.name.lower()):
            return c
    return None

def is_registered(value: Any) -> bool:
    # sin strip: "Sí " no cuenta
    return str(value).lower() in TRUTHY_TOKENS

def filter_valid_rows(
    rows: Sequence[Row],
    columns: Sequence[Column],
) -> Tuple[Tuple[Row, ...], List[Correction]]:
    """
    Subconjunto de usuarios válidos (registrados).
    Sin columna de estado no hay segmentación: se devuelven todas las filas y ninguna nota.
    """
    status = find_status_column(columns)
    if status is None:
        return tuple(rows), []

    kept = tuple(r for r in rows if is_registered(r.get(status.name)))
    logger.debug("Segmentación por '%s': %d de %d filas", status.name, len(kept), len(rows))
    note = Correction(CorrectionKind.SEGMENTATION, f"Segmentación: {len(kept)} usuarios registrados")
    return kept, [note]
