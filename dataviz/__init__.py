"""
Este paquete contiene:
- lectura de tablas (CSV/XLSX)
- reparación de encoding y clasificación semántica de columnas
- segmentación de usuarios registrados
- métricas de progreso, histograma y matriz de compromiso
- exportación a Excel y contexto para el chat de IA
"""
from .models import (Column, ColumnType, Correction, CorrectionKind, Dataset, EngagementMatrix, HistogramBucket, Insights, Metrics)
from .utils import normalize, parse_number
from .classify import classify_column, classify_columns
from .segment import filter_valid_rows
from .metrics import resolve_columns, progress_histogram, compute_metrics
from .matrix import engagement_matrix
from .insights import build_dataset, compute_insights, analyze
from .ingest import IngestError, load_table_from_bytes, load_table_from_upload
from .export import export_report_to_excel_bytes, export_completions_to_excel_bytes
from .prompt import build_system_prompt, chat_context, chat_messages

__all__ = [
    "Column",
    "ColumnType",
    "Correction",
    "CorrectionKind",
    "Dataset",
    "EngagementMatrix",
    "HistogramBucket",
    "Insights",
    "Metrics",
    "normalize",
    "parse_number",
    "classify_column",
    "classify_columns",
    "filter_valid_rows",
    "resolve_columns",
    "progress_histogram",
    "compute_metrics",
    "engagement_matrix",
    "build_dataset",
    "compute_insights",
    "analyze",
    "IngestError",
    "load_table_from_bytes",
    "load_table_from_upload",
    "export_report_to_excel_bytes",
    "export_completions_to_excel_bytes",
    "build_system_prompt",
    "chat_context",
    "chat_messages",
]
