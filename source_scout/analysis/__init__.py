"""source_scout.analysis: классификация источников данных страницы."""

from .analyzer import analyze
from .models import AnalysisResult, DetectedAPI, EmbeddedData

__all__ = ["analyze", "AnalysisResult", "DetectedAPI", "EmbeddedData"]
