from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

Row = Mapping[str, Any]


class ColumnType(str, Enum):
    IDENTIFIER = "IDENTIFIER"
    CATEGORICAL = "CATEGORICAL"
    PERCENTAGE = "PERCENTAGE"
    DURATION = "DURATION"
    TEXT = "TEXT"
    METRIC = "METRIC"
    UNKNOWN = "UNKNOWN"


class CorrectionKind(str, Enum):
    PROGRESS_FALLBACK = "PROGRESS_FALLBACK"
    DURATION_FALLBACK = "DURATION_FALLBACK"
    PROGRESS_MISSING = "PROGRESS_MISSING"
    DURATION_MISSING = "DURATION_MISSING"
    SEGMENTATION = "SEGMENTATION"


@dataclass(frozen=True)
class Column:
    original_name: str
    name: str  # encabezado ya normalizado, clave en cada fila
    type: ColumnType
    sample_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalName": self.original_name,
            "name": self.name,
            "type": self.type.value,
            "sampleValue": self.sample_value,
        }


@dataclass(frozen=True)
class Correction:
    """Ajuste heurístico aplicado (fallback de columna, segmentación...)."""
    kind: CorrectionKind
    detail: str

    def __str__(self) -> str:
        return self.detail

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "detail": self.detail}


@dataclass(frozen=True)
class Dataset:
    rows: Tuple[Row, ...]
    columns: Tuple[Column, ...]

    @property
    def headers(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[Column]:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "rows": [dict(r) for r in self.rows],
        }


@dataclass(frozen=True)
class HistogramBucket:
    label: str
    count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"range": self.label, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class EngagementMatrix:
    stars: int
    persisters: int
    at_risk: int
    disconnected: int
    median_progress: float
    median_duration: float

    @property
    def total(self) -> int:
        return self.stars + self.persisters + self.at_risk + self.disconnected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stars": self.stars,
            "persisters": self.persisters,
            "atRisk": self.at_risk,
            "disconnected": self.disconnected,
            "medians": {"progress": self.median_progress, "duration": self.median_duration},
        }


@dataclass(frozen=True)
class Metrics:
    avg_progress: Optional[float] = None
    avg_duration_high: float = 0.0
    avg_duration_low: float = 0.0
    avg_result: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        # las métricas no calculadas se omiten (registro parcial)
        out: Dict[str, Any] = {
            "avgDurationHigh": self.avg_duration_high,
            "avgDurationLow": self.avg_duration_low,
        }
        if self.avg_progress is not None:
            out["avgProgress"] = self.avg_progress
        if self.avg_result is not None:
            out["avgResult"] = self.avg_result
        return out


@dataclass(frozen=True)
class Insights:
    filtered_rows: Tuple[Row, ...]
    completions: Tuple[Row, ...]
    histogram: Tuple[HistogramBucket, ...]
    metrics: Metrics
    engagement_matrix: Optional[EngagementMatrix] = None
    corrections: Tuple[Correction, ...] = field(default_factory=tuple)
    total_rows: int = 0
    progress_column: Optional[str] = None
    duration_column: Optional[str] = None

    @property
    def excluded_count(self) -> int:
        # filas fuera de la segmentación ("no registrados")
        return self.total_rows - len(self.filtered_rows)

    @property
    def low_progress_count(self) -> int:
        return self.histogram[0].count if self.histogram else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filteredRows": [dict(r) for r in self.filtered_rows],
            "completions": [dict(r) for r in self.completions],
            "progressDistribution": [b.to_dict() for b in self.histogram],
            "engagementMatrix": self.engagement_matrix.to_dict() if self.engagement_matrix else None,
            "metrics": self.metrics.to_dict(),
            "corrections": [c.to_dict() for c in self.corrections],
            "totalUsers": self.total_rows,
            "unregisteredCount": self.excluded_count,
            "lowProgressCount": self.low_progress_count,
            "progressColumn": self.progress_column,
            "durationColumn": self.duration_column,
        }
