# File: source_scout/aggregator.py
"""source_scout.aggregator: сборка итогового отчёта анализа из захвата страницы."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from source_scout.analysis.models import (
    AnalysisResult,
    Confidence,
    DataSourceCategory,
    DetectedAPI,
    EmbeddedData,
)
from source_scout.browser.models import PageCapture


@dataclass(slots=True)
class AnalyzeReport:
    """Результат анализа страницы вместе с метаданными визита."""

    url: str
    final_url: str
    timestamp: str
    load_time_ms: int
    network_idle_reached: bool
    primary_source: DataSourceCategory
    confidence: Confidence
    detected_apis: List[DetectedAPI] = field(default_factory=list)
    embedded_data: Optional[EmbeddedData] = None
    html: Optional[str] = None
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Словарь без пустых html/title (они есть только для ssr-only)."""
        data = asdict(self)
        for key in ("html", "title", "embedded_data"):
            if data[key] is None:
                del data[key]
        return data

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def build_report(capture: PageCapture, analysis: AnalysisResult, load_time_ms: Optional[int] = None) -> AnalyzeReport:
    """Собирает AnalyzeReport из PageCapture и AnalysisResult."""
    return AnalyzeReport(
        url=capture.url,
        final_url=capture.final_url,
        timestamp=capture.timestamp,
        load_time_ms=capture.load_time_ms if load_time_ms is None else load_time_ms,
        network_idle_reached=capture.network_idle_reached,
        primary_source=analysis.primary_source,
        confidence=analysis.confidence,
        detected_apis=analysis.detected_apis,
        embedded_data=analysis.embedded_data,
        html=analysis.html,
        title=analysis.title,
    )


__all__ = ["AnalyzeReport", "build_report"]
