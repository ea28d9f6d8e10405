from __future__ import annotations

from datetime import datetime
from io import BytesIO

import pytest
from openpyxl import Workbook

from dataviz.ingest import (
    IngestError,
    infer_numeric_columns,
    load_table_from_bytes,
    load_table_from_upload,
    matrix_to_records,
)
from dataviz.insights import build_dataset


def _xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for r in rows:
        ws.append(r)
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


class _Upload(BytesIO):
    def __init__(self, name: str, data: bytes):
        super().__init__(data)
        self.name = name


def test_csv_semicolon_delimiter():
    data = "Nombre;Progreso;DNI\nAna;100;0301\nLuis;50;0302\n".encode("utf-8")
    headers, rows = load_table_from_bytes("registros.csv", data)
    assert headers == ["Nombre", "Progreso", "DNI"]
    assert rows == [
        {"Nombre": "Ana", "Progreso": 100, "DNI": "0301"},
        {"Nombre": "Luis", "Progreso": 50, "DNI": "0302"},
    ]


def test_csv_comma_with_blank_cells():
    data = b"a,b,c\n1,,3\n,,\n4,5,6\n"
    headers, rows = load_table_from_bytes("x.CSV", data)
    assert headers == ["a", "b", "c"]
    assert rows == [{"a": 1, "b": None, "c": 3}, {"a": 4, "b": 5, "c": 6}]


def test_csv_in_windows_encoding():
    data = "Duración;Nombre\n15;Ana\n".encode("cp1252")
    headers, rows = load_table_from_bytes("export.csv", data)
    assert headers == ["Duración", "Nombre"]
    assert rows[0]["Duración"] == 15


@pytest.mark.parametrize("data", [b"", b"\n\n", b"solo,encabezado\n"])
def test_empty_files_are_rejected(data):
    with pytest.raises(IngestError):
        load_table_from_bytes("vacio.csv", data)


def test_unsupported_extension():
    with pytest.raises(IngestError, match="no soportado"):
        load_table_from_bytes("informe.pdf", b"%PDF-1.4")


def test_corrupt_excel_raises_ingest_error():
    with pytest.raises(IngestError):
        load_table_from_bytes("roto.xlsx", b"no es un zip")


def test_xlsx_first_sheet_with_leading_blank_rows():
    data = _xlsx([
        [None, None, None],
        ["Nombre", "Progreso", "Inicio"],
        ["Ana", 0.75, datetime(2024, 3, 1)],
        ["Luis", 1, None],
    ])
    headers, rows = load_table_from_bytes("curso.xlsx", data)
    assert headers == ["Nombre", "Progreso", "Inicio"]
    assert rows[0] == {"Nombre": "Ana", "Progreso": 0.75, "Inicio": "2024-03-01T00:00:00"}
    assert rows[1] == {"Nombre": "Luis", "Progreso": 1, "Inicio": None}


def test_upload_object():
    upload = _Upload("u.csv", b"a;b\n1;2\n")
    headers, rows = load_table_from_upload(upload)
    assert headers == ["a", "b"]
    assert rows == [{"a": 1, "b": 2}]


def test_duplicate_and_blank_headers_become_distinct_keys():
    headers, rows = matrix_to_records([
        ["Nota", None, "Nota", "Extra", None],
        [1, 2, 3, 4, None],
        [5, 6, 7],
    ])
    assert headers == ["Nota", "col_2", "Nota__2", "Extra"]
    assert rows[0] == {"Nota": 1, "col_2": 2, "Nota__2": 3, "Extra": 4}
    assert rows[1] == {"Nota": 5, "col_2": 6, "Nota__2": 7, "Extra": None}


def test_csv_ragged_rows_are_padded():
    data = b"Nombre,Nota\nAna,10,extra\nLuis\nEva,7\n"
    headers, rows = load_table_from_bytes("ragged.csv", data)
    assert headers == ["Nombre", "Nota", "col_3"]
    assert rows == [
        {"Nombre": "Ana", "Nota": 10, "col_3": "extra"},
        {"Nombre": "Luis", "Nota": None, "col_3": None},
        {"Nombre": "Eva", "Nota": 7, "col_3": None},
    ]


def test_csv_trailing_separators_add_no_columns():
    data = b"Nombre;Nota;;\nAna;10;;\nLuis;8;;\n"
    headers, rows = load_table_from_bytes("export.csv", data)
    assert headers == ["Nombre", "Nota"]
    assert rows[1] == {"Nombre": "Luis", "Nota": 8}


def test_numeric_columns_keep_leading_zero_codes_as_text():
    headers = ["DNI", "Nota", "Mixta", "Decimal"]
    records = [
        {"DNI": "0301", "Nota": "7", "Mixta": "3", "Decimal": "0.5"},
        {"DNI": "1302", "Nota": None, "Mixta": "n/a", "Decimal": " -1.25 "},
    ]
    out = infer_numeric_columns(headers, records)
    assert out == [
        {"DNI": "0301", "Nota": 7, "Mixta": "3", "Decimal": 0.5},
        {"DNI": "1302", "Nota": None, "Mixta": "n/a", "Decimal": -1.25},
    ]
    assert records[0]["Nota"] == "7"


def test_csv_and_xlsx_give_same_column_types():
    table = [["Nombre", "Edad", "Comentario", "Progreso", "DNI"]]
    for i in range(10):
        table.append([f"U{i}", 30, f"comentario {i}", i * 10, f"0{i}11"])
    csv_bytes = "\n".join(",".join(str(v) for v in row) for row in table).encode("utf-8")

    csv_ds = build_dataset(*load_table_from_bytes("datos.csv", csv_bytes))
    xlsx_ds = build_dataset(*load_table_from_bytes("datos.xlsx", _xlsx(table)))

    assert [c.type for c in csv_ds.columns] == [c.type for c in xlsx_ds.columns]
    assert csv_ds.column("Edad").sample_value == 30
    assert csv_ds.column("DNI").sample_value == "0011"
