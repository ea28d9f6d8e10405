from __future__ import annotations
import csv
import logging
import math
import re
from datetime import date, datetime, time
from io import BytesIO, StringIO
from typing import Any, Dict, List, Optional, Tuple
import pandas as pd
from openpyxl import load_workbook
from .utils import make_unique

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ["utf-8-sig", "utf-8", "cp1252", "latin-1"]
EXCEL_EXTENSIONS = (".xlsx", ".xlsm")


class IngestError(Exception):
    """Archivo vacío, ilegible o con formato no soportado."""


def _cell_value(v: Any) -> Any:
    # celdas vacías -> None; fechas -> texto ISO (serializable)
    if v is None:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    if isinstance(v, (datetime, date, time)):
        return v.isoformat()
    if isinstance(v, str) and v.strip() == "":
        return None
    return v

def _is_empty_row(vals: List[Any]) -> bool:
    return all(v is None for v in vals)
# =========================

# Excel: primera hoja como matriz
# =========================
def _sheet_to_matrix(data: bytes) -> List[List[Any]]:
    wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return [[_cell_value(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
# =========================

# CSV: lectura robusta desde bytes
# =========================
def _guess_delimiter(sample_text: str) -> str:
    # "," (en-US) o ";" (locales es), a veces tabs
    try:
        dialect = csv.Sniffer().sniff(sample_text, delimiters=";,\t|")
        if dialect.delimiter:
            return dialect.delimiter
    except csv.Error:
        pass

    candidates = [";", ",", "\t", "|"]
    lines = [ln for ln in sample_text.splitlines() if ln.strip()][:20]
    if not lines:
        return ","

    scores = {}
    for d in candidates:
        cnts = [ln.count(d) for ln in lines]
        scores[d] = sum(cnts) / max(1, len(cnts))

    best = max(scores.items(), key=lambda x: x[1])[0]
    return best if scores.get(best, 0) > 0 else ","

def _max_fields(text: str, delim: str) -> int:
    # filas con distinta cantidad de campos (exportaciones con separadores de más)
    return max((len(r) for r in csv.reader(StringIO(text), delimiter=delim)), default=0)

def _read_csv_matrix(data: bytes) -> List[List[Any]]:
    # sin header: la primera fila se trata aparte; dtype=str para no perder ceros a la izquierda (DNI)
    last_err: Optional[Exception] = None
    for enc in CSV_ENCODINGS:
        try:
            text = data.decode(enc)
            delim = _guess_delimiter(text[:65536])
            width = _max_fields(text, delim)
            if width == 0:
                raise pd.errors.EmptyDataError("sin columnas")
            df = pd.read_csv(
                StringIO(text),
                header=None,
                names=list(range(width)),
                sep=delim,
                engine="python",
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (UnicodeDecodeError, csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            last_err = e
            continue
        return [[_cell_value(v) for v in row] for row in df.itertuples(index=False, name=None)]

    if isinstance(last_err, pd.errors.EmptyDataError):
        raise IngestError("El archivo parece estar vacío o mal formateado.") from last_err
    raise IngestError("No se pudo leer el CSV.") from last_err
# =========================

# Matriz -> (encabezados, filas)
# =========================
def _last_filled(vals: List[Any]) -> int:
    for i in range(len(vals) - 1, -1, -1):
        if vals[i] is not None:
            return i + 1
    return 0

def matrix_to_records(matrix: List[List[Any]]) -> Tuple[List[Any], List[Dict[Any, Any]]]:
    rows = [list(r) for r in matrix]
    while rows and _is_empty_row(rows[-1]):
        rows.pop()
    # primera fila no vacía = encabezado
    while rows and _is_empty_row(rows[0]):
        rows.pop(0)
    if not rows:
        raise IngestError("El archivo parece estar vacío o mal formateado.")

    # columnas sin encabezado se conservan si tienen datos
    width = max(_last_filled(r) for r in rows)
    headers = (rows[0] + [None] * width)[:width]
    # encabezados vacíos o repetidos no pueden ser claves de fila
    headers = make_unique([h if h is not None else f"col_{i + 1}" for i, h in enumerate(headers)])

    records: List[Dict[Any, Any]] = []
    for r in rows[1:]:
        r = (r + [None] * width)[:width]
        if _is_empty_row(r):
            continue
        records.append({h: v for h, v in zip(headers, r)})

    if not headers or not records:
        raise IngestError("El archivo parece estar vacío o mal formateado.")
    return headers, records
# =========================

# CSV: tipos numéricos por columna (como los devuelve openpyxl en un XLSX)
# =========================
_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?(?:\d+\.\d*|\.\d+)")
_LEADING_ZERO_RE = re.compile(r"-?0\d")


def _to_number(s: str) -> Any:
    s = s.strip()
    if _INT_RE.fullmatch(s):
        return int(s)
    if _FLOAT_RE.fullmatch(s):
        return float(s)
    return None

def infer_numeric_columns(headers: List[Any], records: List[Dict[Any, Any]]) -> List[Dict[Any, Any]]:
    """
    Columnas cuyo valor no vacío es siempre un número pasan a int/float.
    Si algún valor tiene ceros a la izquierda ("0301") la columna queda como texto (DNI, códigos).
    """
    numeric = []
    for h in headers:
        vals = [r[h] for r in records if r[h] is not None]
        if not vals or not all(isinstance(v, str) for v in vals):
            continue
        if any(_LEADING_ZERO_RE.match(v.strip()) for v in vals):
            continue
        if all(_to_number(v) is not None for v in vals):
            numeric.append(h)

    if not numeric:
        return records
    out = []
    for r in records:
        r = dict(r)
        for h in numeric:
            if r[h] is not None:
                r[h] = _to_number(r[h])
        out.append(r)
    return out

def load_table_from_bytes(name: str, data: bytes) -> Tuple[List[Any], List[Dict[Any, Any]]]:
    """
    Devuelve (encabezados originales, filas) de un CSV o de la primera hoja de un Excel.
    Las filas son dicts encabezado -> valor (None si la celda está vacía).
    """
    if not data:
        raise IngestError("El archivo parece estar vacío o mal formateado.")

    lname = (name or "").lower()
    if lname.endswith(".csv"):
        matrix = _read_csv_matrix(data)
    elif lname.endswith(EXCEL_EXTENSIONS):
        try:
            matrix = _sheet_to_matrix(data)
        except Exception as e:
            raise IngestError("Error al procesar el archivo. Asegúrate de que sea un CSV o XLSX válido.") from e
    else:
        raise IngestError(f"Formato no soportado: {name}")

    headers, records = matrix_to_records(matrix)
    if lname.endswith(".csv"):
        records = infer_numeric_columns(headers, records)
    logger.info("Leído %s: %d columnas, %d filas", name, len(headers), len(records))
    return headers, records

def load_table_from_upload(upload) -> Tuple[List[Any], List[Dict[Any, Any]]]:
    # cualquier objeto con .name y .getvalue() (st.UploadedFile, BytesIO con nombre...)
    return load_table_from_bytes(upload.name, upload.getvalue())
