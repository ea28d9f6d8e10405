from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import load_workbook

from dataviz.classify import classify_columns
from dataviz.export import (
    SHEET_COMPLETIONS,
    SHEET_FULL,
    SHEET_METRICS,
    completion_export_rows,
    export_completions_to_excel_bytes,
    export_report_to_excel_bytes,
    metrics_report_rows,
    rows_to_excel_bytes,
)
from dataviz.ingest import load_table_from_bytes
from dataviz.insights import analyze, build_dataset, compute_insights
from dataviz.models import ColumnType


def _sheetnames(data: bytes):
    wb = load_workbook(BytesIO(data), read_only=True)
    try:
        return wb.sheetnames
    finally:
        wb.close()


def test_report_rows_with_matrix(course_dataset):
    insights = compute_insights(course_dataset)
    rows = metrics_report_rows(course_dataset, insights)

    assert len(rows) == 4 + 1 + 6 + 1 + 5
    assert rows[0]["Métrica"] == "Total Usuarios en Archivo" and rows[0]["Valor"] == 10
    assert rows[1]["Valor"] == 8
    assert rows[2]["Valor"] == "61.88%"
    assert rows[3]["Valor"] == 3
    assert rows[4] == {"Categoría": None, "Métrica": None, "Valor": None}
    assert [r["Métrica"] for r in rows[6:11]] == ["0-24%", "25-49%", "50-74%", "75-99%", "100%"]
    assert [r["Valor"] for r in rows[6:11]] == [2, 1, 1, 1, 3]
    assert rows[12]["Categoría"] == "MATRIZ DE COMPROMISO"
    assert [r["Valor"] for r in rows[13:]] == [2, 2, 2, 2]


def test_report_rows_without_progress():
    headers = ["Nombre", "Comentario"]
    dataset, insights = analyze(headers, [{"Nombre": "Ana", "Comentario": "hola"}])
    rows = metrics_report_rows(dataset, insights)
    assert rows[2]["Valor"] == "N/A"
    assert len(rows) == 11
    assert all(r["Categoría"] != "MATRIZ DE COMPROMISO" for r in rows)


def test_report_workbook_sheets(course_dataset):
    insights = compute_insights(course_dataset)
    data = export_report_to_excel_bytes(course_dataset, insights)
    assert _sheetnames(data) == [SHEET_FULL, SHEET_METRICS]


def test_completion_rows(course_dataset):
    insights = compute_insights(course_dataset)
    rows = completion_export_rows(course_dataset, insights)
    assert [r["Nombre"] for r in rows] == ["Usuario0", "Usuario2", "Usuario8"]
    assert rows[0] == {"Nombre": "Usuario0", "Apellido": "Apellido0", "DNI": "30000000", "Progreso": "100%"}


def test_completion_rows_fall_back_to_duration_column():
    headers = ["Nombre", "Progreso", "Minutos"]
    rows = [{"Nombre": "Ana", "Progreso": 100, "Minutos": 42}]
    dataset, insights = analyze(headers, rows)
    assert completion_export_rows(dataset, insights) == [{"Nombre": "Ana", "Minutos": 42, "Progreso": "100%"}]


def test_completions_workbook_when_nobody_finished():
    dataset, insights = analyze(["Nombre", "Progreso"], [{"Nombre": "Ana", "Progreso": 10}])
    data = export_completions_to_excel_bytes(dataset, insights)
    assert _sheetnames(data) == [SHEET_COMPLETIONS]


def test_exported_rows_reimport_with_same_column_types(course_dataset):
    insights = compute_insights(course_dataset)
    data = rows_to_excel_bytes(course_dataset.headers, insights.filtered_rows)

    headers, raw_rows = load_table_from_bytes("reexport.xlsx", data)
    again = build_dataset(headers, raw_rows)
    before = classify_columns(course_dataset.headers, insights.filtered_rows)
    assert headers == course_dataset.headers
    for old, new in zip(before, again.columns):
        if old.type != ColumnType.UNKNOWN:
            assert new.type == old.type, old.name


@pytest.mark.parametrize("sheet_name", ["Base Completa", "Hoja"])
def test_rows_to_excel_bytes_sheet_name(sheet_name):
    data = rows_to_excel_bytes(["a"], [{"a": 1}], sheet_name=sheet_name)
    assert _sheetnames(data) == [sheet_name]
