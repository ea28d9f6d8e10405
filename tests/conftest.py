# Shared pytest fixtures
from __future__ import annotations

import pytest

from dataviz.insights import build_dataset
from dataviz.log import reset_logging


COURSE_HEADERS = ["Nombre", "Apellido", "DNI", "Registrado", "Curso", "F", "Tiempo"]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()


@pytest.fixture()
def two_user_rows() -> list[dict]:
    """Smallest course export: one registered user at 100%, one unregistered at 50%."""
    return [
        {"Nombre": "Ana", "Apellido": "Pérez", "DNI": "30111222", "Registrado": "Sí", "Curso": "Excel", "F": "100", "Tiempo": "30"},
        {"Nombre": "Luis", "Apellido": "Gómez", "DNI": "30111333", "Registrado": "No", "Curso": "Excel", "F": "50", "Tiempo": "10"},
    ]


@pytest.fixture()
def course_rows() -> list[dict]:
    """Ten users, eight registered, progress as fractions and percentages mixed."""
    rows = []
    progress = [1, 0.8, 100, 45, 0.1, 60, 75, 0, 100, 20]
    minutes = [40, 55, 35, 90, 120, 15, 60, 5, 80, 100]
    status = ["Sí", "si", "Sí", "Sí", "yes", "Sí", "No", "Sí", "Sí", "No"]
    for i in range(10):
        rows.append({
            "Nombre": f"Usuario{i}",
            "Apellido": f"Apellido{i}",
            "DNI": f"3000000{i}",
            "Registrado": status[i],
            "Curso": "Excel" if i % 2 else "Word",
            "F": progress[i],
            "Tiempo": minutes[i],
        })
    return rows


@pytest.fixture()
def course_dataset(course_rows):
    return build_dataset(COURSE_HEADERS, course_rows)
