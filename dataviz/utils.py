from __future__ import annotations
import os
import re
import json
import math
from pathlib import Path
from typing import Any, Iterable, List, Optional

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

DATA_DIR_ENV = os.environ.get("DATAVIZ_DATA_DIR")
if DATA_DIR_ENV:
    USER_DATA_DIR = Path(DATA_DIR_ENV)
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

def rules_path() -> Path:
    return USER_DATA_DIR / "rules.json"

def rule_list(rules: dict, key: str, default: List[str]) -> List[str]:
    # Lista de palabras clave desde rules.json; si falta o está mal formada, se usa la de código
    v = rules.get(key) if isinstance(rules, dict) else None
    if not isinstance(v, list) or not v:
        return list(default)
    return [str(x) for x in v if str(x).strip()]

# =========================
# Encoding: UTF-8 leído como Latin-1 / Windows-1252
# =========================
# Orden importante: primero palabras completas, luego caracteres sueltos,
# y al final la 'Ã' huérfana (la 'í' pierde su segundo byte \xad al mostrarse).
_WORD_FIXES = [
    (re.compile("duraciÃ³n", re.I), "duración"),
    (re.compile("telÃ©fono", re.I), "teléfono"),
]
_CHAR_FIXES = [
    ("SÃ\xad", "Sí"),
    ("Ã©", "é"),
    ("Ã³", "ó"),
    ("Ã±", "ñ"),
    ("Ã¡", "á"),
    ("Ãº", "ú"),
    ("Ã\xad", "í"),
    ("Ã", "í"),
]


def _keep_case(found: str, repl: str) -> str:
    # "DuraciÃ³n" -> "Duración", "DURACIÃ³N" -> "DURACIÓN"
    if found.isupper():
        return repl.upper()
    if found[:1].isupper():
        return repl[:1].upper() + repl[1:]
    return repl


def normalize(s: Any) -> Any:
    """
    Repara secuencias mal decodificadas típicas de exportaciones CSV/Excel:
    'duraciÃ³n' -> 'duración', 'Ã©' -> 'é', etc.
    Lo que no es str se devuelve tal cual.
    """
    if not isinstance(s, str):
        return s
    if "Ã" not in s:
        return s
    for rx, repl in _WORD_FIXES:
        s = rx.sub(lambda m, r=repl: _keep_case(m.group(0), r), s)
    for bad, good in _CHAR_FIXES:
        s = s.replace(bad, good)
    return s

_WS_RE = re.compile(r"\s+")
_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")


def norm_text(s: Any) -> str:
    # lower + trim + espacios colapsados, para comparar nombres de columnas
    if s is None:
        return ""
    s = str(s).replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    s = _WS_RE.sub(" ", s).strip()
    return s.lower()

def make_unique(cols: Iterable[Any]) -> List[str]:
    seen = {}
    out = []
    for c in cols:
        base = "" if c is None else str(c).strip()
        if base == "" or base.lower() == "nan":
            base = "col"
        n = seen.get(base, 0) + 1
        seen[base] = n
        out.append(base if n == 1 else f"{base}__{n}")
    return out

def keyword_regex(words: Iterable[str], whole_word: bool = False) -> re.Pattern:
    alts = "|".join(re.escape(w.lower()) for w in words)
    if whole_word:
        return re.compile(rf"\b(?:{alts})\b")
    return re.compile(rf"(?:{alts})")

# =========================
# Números
# =========================
_NON_NUMERIC_RE = re.compile(r"[^\d.\-]")


def parse_number(v: Any) -> Optional[float]:
    """
    Conversión "ingenua" a número: se eliminan todos los caracteres salvo
    dígitos, '.' y '-', y se interpreta como float.

    Ojo: "12,5" -> 125.0 y "10-20" -> None (la coma decimal no se soporta).
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        f = float(v)
        return f if math.isfinite(f) else None
    s = str(v)
    if s == "":
        return None
    s = _NON_NUMERIC_RE.sub("", s)
    if not s:
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    return f if math.isfinite(f) else None

def looks_numeric(v: Any) -> bool:
    # el valor completo es un número (sin limpiar caracteres), p.ej. 12, "12.5", " 7 "
    if isinstance(v, bool):
        return bool(v)
    if isinstance(v, (int, float)):
        return True
    if not v:
        return False
    try:
        f = float(str(v).strip())
    except ValueError:
        return False
    return not math.isnan(f)
