from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple
from .models import Column, ColumnType
from .utils import (norm_text, parse_number, looks_numeric, keyword_regex, rule_list, load_json, rules_path)


RULES = load_json(rules_path(), {})

SYN = {
    # palabra completa: "id" no debe capturar "video" ni "unidad"
    "identifier": [
        "dni", "id", "documento", "codigo", "cédula", "cedula", "rut",
        "identificación", "identificacion", "matrícula", "matricula",
    ],
    "progress": ["%", "progreso", "resultado", "avance", "nota", "puntaje", "score", "completion", "completitud"],
    "duration": [
        "minutos", "duración", "duracion", "tiempo", "horas", "segundos",
        "time", "duration", "spent", "mínimo", "maximo",
    ],
}

# Columna F = índice 5 en el layout de exportación de la plataforma de cursos
PROGRESS_COLUMN_INDEX = 5
PROGRESS_COLUMN_LETTER = "f"
CATEGORICAL_MAX_UNIQUE_RATIO = 0.2


@dataclass(frozen=True)
class ColumnContext:
    name: str  # normalizado (lower/trim)
    values: Sequence[Any]
    index: int
    total_columns: int


Predicate = Callable[[ColumnContext], bool]


@dataclass(frozen=True)
class ClassificationRule:
    type: ColumnType
    predicate: Predicate
    label: str = ""

    def matches(self, ctx: ColumnContext) -> bool:
        return bool(self.predicate(ctx))

# =========================

# Predicados
# =========================
def _name_matches(words: List[str], whole_word: bool = False) -> Predicate:
    rx = keyword_regex(words, whole_word=whole_word)
    return lambda ctx: bool(rx.search(ctx.name))

def _any_of(*preds: Predicate) -> Predicate:
    return lambda ctx: any(p(ctx) for p in preds)

def _has_numeric_value(ctx: ColumnContext) -> bool:
    # protege contra columnas de texto libre que solo mencionan "progreso"
    return any(parse_number(v) is not None for v in ctx.values)

def _numeric_guard(pred: Predicate) -> Predicate:
    return lambda ctx: pred(ctx) and _has_numeric_value(ctx)

def _is_low_cardinality_text(ctx: ColumnContext) -> bool:
    if not ctx.values or not isinstance(ctx.values[0], str):
        return False
    uniq = {v for v in ctx.values if v is not None}
    return len(uniq) < len(ctx.values) * CATEGORICAL_MAX_UNIQUE_RATIO

def _first_value_numeric(ctx: ColumnContext) -> bool:
    return bool(ctx.values) and looks_numeric(ctx.values[0])

# =========================

# Reglas posicionales (layout de exportación conocido)
# =========================
# Se mantienen aparte de las reglas por nombre: build_rules(positional_hints=False)
# las desactiva sin tocar el resto.
def _at_progress_position(ctx: ColumnContext) -> bool:
    return ctx.index == PROGRESS_COLUMN_INDEX or ctx.name == PROGRESS_COLUMN_LETTER

def _at_duration_position(ctx: ColumnContext) -> bool:
    return ctx.index == ctx.total_columns - 1

def _never(ctx: ColumnContext) -> bool:
    return False
# =========================

# Orden de evaluación: la primera regla que cumple gana
# =========================
def build_rules(
    rules: Optional[Mapping[str, Any]] = None,
    positional_hints: Optional[bool] = None,
) -> Tuple[ClassificationRule, ...]:
    rules = RULES if rules is None else rules
    if positional_hints is None:
        positional_hints = bool(rules.get("positional_hints", True)) if isinstance(rules, Mapping) else True

    ident_kws = rule_list(rules, "identifier_keywords", SYN["identifier"])
    progress_kws = rule_list(rules, "progress_keywords", SYN["progress"])
    duration_kws = rule_list(rules, "duration_keywords", SYN["duration"])

    progress_pos = _at_progress_position if positional_hints else _never
    duration_pos = _at_duration_position if positional_hints else _never

    return (
        ClassificationRule(ColumnType.IDENTIFIER, _name_matches(ident_kws, whole_word=True), "identifier_name"),
        ClassificationRule(
            ColumnType.PERCENTAGE,
            _numeric_guard(_any_of(_name_matches(progress_kws), progress_pos)),
            "progress_name_or_column_f",
        ),
        ClassificationRule(
            ColumnType.DURATION,
            _numeric_guard(_any_of(_name_matches(duration_kws), duration_pos)),
            "duration_name_or_last_column",
        ),
        ClassificationRule(ColumnType.CATEGORICAL, _is_low_cardinality_text, "low_cardinality_text"),
        ClassificationRule(ColumnType.METRIC, _first_value_numeric, "numeric_first_value"),
    )


CLASSIFIER_RULES = build_rules()


def classify_column(
    name: Any,
    values: Sequence[Any],
    index: int,
    total_columns: int,
    rules: Optional[Sequence[ClassificationRule]] = None,
) -> ColumnType:
    """
    Tipo semántico de una columna a partir de su encabezado, posición y valores.
    Determinista y total: si ninguna regla aplica, TEXT.
    """
    ctx = ColumnContext(name=norm_text(name), values=list(values), index=int(index), total_columns=int(total_columns))
    for rule in (CLASSIFIER_RULES if rules is None else rules):
        if rule.matches(ctx):
            return rule.type
    return ColumnType.TEXT

def classify_columns(
    headers: Sequence[str],
    rows: Sequence[Mapping[str, Any]],
    original_names: Optional[Sequence[str]] = None,
    rules: Optional[Sequence[ClassificationRule]] = None,
) -> Tuple[Column, ...]:
    total = len(headers)
    originals = list(original_names) if original_names is not None else list(headers)
    out: List[Column] = []
    for idx, h in enumerate(headers):
        values = [r.get(h) for r in rows]
        out.append(Column(
            original_name=originals[idx],
            name=h,
            type=classify_column(h, values, idx, total, rules=rules),
            sample_value=values[0] if values else None,
        ))
    return tuple(out)
