from __future__ import annotations
import json
import math
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List
import numpy as np
from .models import Dataset, Insights

PROMPT_SAMPLE_SIZE = 20

SYSTEM_PROMPT_TEMPLATE = """Eres un analista de datos senior con criterio de negocio.
Tus respuestas deben ser en español, profesionales, directas y basadas UNICAMENTE en los datos proporcionados.

DATOS PROCESADOS:
- Total registros limpios: {valid_rows}
- Columnas identificadas: {columns}
- Usuarios al 100%: {completions}
- Usuarios < 25%: {low_progress}
- Resumen Distribución: {distribution}
- Metricas extra: {metrics}
- Matriz de compromiso: {matrix}
- Correcciones aplicadas: {corrections}

REGLAS:
1. Si el usuario pide nombres o tablas, genera una respuesta clara y formateada.
2. Si una columna es IDENTIFIER (como DNI), JAMÁS calcules promedios sobre ella.
3. Prioriza lo accionable. No solo digas el número, di qué significa.
4. Si la pregunta no se puede responder con los datos, dilo honestamente.

CONTEXTO DE DATOS (primeros {sample_size} registros válidos):
{sample}
"""


def to_jsonable(value: Any) -> Any:
    """Convierte a estructuras planas serializables (dict/list/escalares)."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, np.generic):
        return to_jsonable(value.item())
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return to_jsonable(value.to_dict())
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if hasattr(value, "items"):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    return str(value)

def _dumps(value: Any) -> str:
    return json.dumps(to_jsonable(value), ensure_ascii=False)

def chat_context(dataset: Dataset, insights: Insights, sample_size: int = PROMPT_SAMPLE_SIZE) -> Dict[str, Any]:
    return to_jsonable({
        "validRows": len(insights.filtered_rows),
        "totalRows": insights.total_rows,
        "columns": [{"name": c.name, "type": c.type} for c in dataset.columns],
        "completions": len(insights.completions),
        "lowProgressCount": insights.low_progress_count,
        "progressDistribution": insights.histogram,
        "metrics": insights.metrics,
        "engagementMatrix": insights.engagement_matrix,
        "corrections": insights.corrections,
        "sample": list(insights.filtered_rows[:max(0, sample_size)]),
    })

def build_system_prompt(dataset: Dataset, insights: Insights, sample_size: int = PROMPT_SAMPLE_SIZE) -> str:
    ctx = chat_context(dataset, insights, sample_size=sample_size)
    return SYSTEM_PROMPT_TEMPLATE.format(
        valid_rows=ctx["validRows"],
        columns=", ".join(f'{c["name"]} ({c["type"]})' for c in ctx["columns"]),
        completions=ctx["completions"],
        low_progress=ctx["lowProgressCount"],
        distribution=_dumps(ctx["progressDistribution"]),
        metrics=_dumps(ctx["metrics"]),
        matrix=_dumps(ctx["engagementMatrix"]),
        corrections="; ".join(c["detail"] for c in ctx["corrections"]) or "ninguna",
        sample_size=sample_size,
        sample=_dumps(ctx["sample"]),
    )
# =========================

# Atajos del chat
# =========================
SHORTCUT_PROMPTS = [
    ("Resumen Ejecutivo", "📌 Dame un resumen ejecutivo de los hallazgos principales"),
    ("Análisis de Rangos", "📊 Explícame la distribución de progreso por rangos"),
    ("Alerta de Abandono", "⚠️ ¿Qué usuarios están por debajo del 25% de progreso y cuánto tiempo llevan?"),
    ("Análisis de Frustración", '⏱️ Basado en la matriz, ¿quiénes son los usuarios "En Riesgo" y qué me sugieres hacer?'),
]


def chat_messages(dataset: Dataset, insights: Insights, question: str, sample_size: int = PROMPT_SAMPLE_SIZE) -> List[Dict[str, str]]:
    """Mensajes listos para un modelo de chat (system + pregunta del usuario)."""
    return [
        {"role": "system", "content": build_system_prompt(dataset, insights, sample_size=sample_size)},
        {"role": "user", "content": question.strip()},
    ]
