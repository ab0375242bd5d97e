# source_scout/analysis/models.py
"""
Result types of the data-source analysis.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

from source_scout.analysis.embedded import EmbeddedCategory
from source_scout.analysis.schema import JSONSchema

APICategory = Literal["json-api", "graphql", "xml-api", "html-api"]
DataSourceCategory = Literal[
    "json-api",
    "graphql",
    "xml-api",
    "html-api",
    "nextjs-embedded",
    "nuxt-embedded",
    "ssr-only",
]
Confidence = Literal["high", "medium", "low"]

# fixed order used to break tally ties
API_CATEGORIES: tuple[APICategory, ...] = ("json-api", "graphql", "xml-api", "html-api")


@dataclass(slots=True)
class DetectedAPI:
    """One classified core-data exchange."""

    url: str
    method: str
    category: APICategory
    schema: JSONSchema
    sample: Any
    response_headers: Dict[str, str]
    request_headers: Dict[str, str]
    post_data: Optional[str] = None


@dataclass(slots=True)
class EmbeddedData:
    category: EmbeddedCategory
    data: Any
    schema: JSONSchema


@dataclass(slots=True)
class AnalysisResult:
    """How the page sources its data. ``html``/``title`` only for ``ssr-only``."""

    primary_source: DataSourceCategory
    confidence: Confidence
    detected_apis: List[DetectedAPI] = field(default_factory=list)
    embedded_data: Optional[EmbeddedData] = None
    html: Optional[str] = None
    title: Optional[str] = None

    @property
    def include_html(self) -> bool:
        return self.primary_source == "ssr-only"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "APICategory",
    "API_CATEGORIES",
    "AnalysisResult",
    "Confidence",
    "DataSourceCategory",
    "DetectedAPI",
    "EmbeddedData",
]
