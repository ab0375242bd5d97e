# source_scout/analysis/analyzer.py
"""
DataSourceAnalyzer: decides how a rendered page obtains its data.

Pure functions over (html, exchanges, title); nothing here navigates or raises
on malformed input. Unparseable bodies are skipped and the result simply gets
emptier or less confident.
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, List, Optional, Tuple

from source_scout.analysis.content import (
    content_category,
    is_graphql,
    safe_json_parse,
    summarize_html,
    xml_to_json,
)
from source_scout.analysis.embedded import extract_embedded
from source_scout.analysis.filters import is_core_data_request
from source_scout.analysis.models import (
    API_CATEGORIES,
    AnalysisResult,
    APICategory,
    Confidence,
    DataSourceCategory,
    DetectedAPI,
    EmbeddedData,
)
from source_scout.analysis.schema import create_sample, infer_schema
from source_scout.browser.models import ExchangeRecord
from source_scout.logger import logger


def find_embedded_data(html: str) -> Optional[EmbeddedData]:
    raw = extract_embedded(html)
    if raw is None:
        return None
    return EmbeddedData(category=raw.category, data=raw.data, schema=infer_schema(raw.data))


def _classify_body(url: str, content_type: str, body: str) -> Optional[Tuple[APICategory, Any]]:
    category = content_category(content_type)
    if category == "json":
        data = safe_json_parse(body)
        if data is None:
            return None
        return ("graphql" if is_graphql(url, data) else "json-api"), data
    if category == "xml":
        data = xml_to_json(body)
        if data is None:
            return None
        return "xml-api", data
    if category == "html":
        return "html-api", summarize_html(body)
    return None


def detect_apis(exchanges: Iterable[ExchangeRecord]) -> List[DetectedAPI]:
    """Classify every exchange that survives the analytics filter."""
    apis: List[DetectedAPI] = []
    for record in exchanges:
        request, response = record.request, record.response
        if response is None or response.body is None:
            continue
        if not is_core_data_request(response.url, response.content_type, request.resource_type, response.body):
            continue
        classified = _classify_body(response.url, response.content_type, response.body)
        if classified is None:
            logger.debug("Skipping unparseable %s body from %s", response.content_type, response.url)
            continue
        category, data = classified
        apis.append(
            DetectedAPI(
                url=request.url,
                method=request.method,
                category=category,
                schema=infer_schema(data),
                sample=create_sample(data),
                response_headers=dict(response.headers),
                request_headers=dict(request.headers),
                post_data=request.post_data,
            )
        )
    return apis


def _has_page_props(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    props = data.get("props")
    page_props = props.get("pageProps") if isinstance(props, dict) else None
    return isinstance(page_props, dict) and len(page_props) > 0


def determine_primary_source(
    apis: List[DetectedAPI],
    embedded: Optional[EmbeddedData],
) -> Tuple[DataSourceCategory, Confidence]:
    """Primary source and confidence, by strict precedence."""
    if embedded is not None and embedded.category == "nextjs-embedded" and _has_page_props(embedded.data):
        return "nextjs-embedded", "high"
    if embedded is not None and embedded.category == "nuxt-embedded":
        return "nuxt-embedded", "high"

    if not apis:
        return (embedded.category if embedded is not None else "ssr-only"), "medium"

    counts = Counter(api.category for api in apis)
    if counts["graphql"] > 0:
        return "graphql", "high" if counts["graphql"] > 1 else "medium"

    top: APICategory = API_CATEGORIES[0]
    top_count = 0
    for category in API_CATEGORIES:
        if counts[category] > top_count:
            top, top_count = category, counts[category]
    confidence: Confidence = "high" if top_count >= 3 else "medium" if top_count >= 1 else "low"
    return top, confidence


def analyze(html: str, exchanges: Iterable[ExchangeRecord], title: Optional[str] = None) -> AnalysisResult:
    """Classify how the page sources its data."""
    embedded = find_embedded_data(html or "")
    apis = detect_apis(exchanges)
    primary, confidence = determine_primary_source(apis, embedded)
    result = AnalysisResult(
        primary_source=primary,
        confidence=confidence,
        detected_apis=apis,
        embedded_data=embedded,
    )
    if result.include_html:
        result.html = html
        result.title = title
    return result


__all__ = ["analyze", "detect_apis", "determine_primary_source", "find_embedded_data"]
