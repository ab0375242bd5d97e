# File: tests/test_embedded.py
import json

import pytest

from source_scout.analysis.embedded import (
    extract_embedded,
    normalize_object_literal,
    parse_object_literal,
)

NEXT_STATE = {"props": {"pageProps": {"product": {"id": 7, "name": "Widget"}}}, "page": "/p/[id]"}


def _page(body: str) -> str:
    return f"<html><head><title>T</title></head><body><div id='app'></div>{body}</body></html>"


def _next_script(data) -> str:
    return f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script>'


def test_next_data_extracted():
    raw = extract_embedded(_page(_next_script(NEXT_STATE)))
    assert raw.category == "nextjs-embedded"
    assert raw.data == NEXT_STATE


def test_nuxt3_payload_extracted():
    payload = [{"state": 1}, {"products": 2}, ["Widget", "Gadget"]]
    html = _page(f'<script type="application/json" id="__NUXT_DATA__">{json.dumps(payload)}</script>')
    raw = extract_embedded(html)
    assert raw.category == "nuxt-embedded"
    assert raw.data == payload


def test_next_wins_over_nuxt():
    html = _page(
        _next_script(NEXT_STATE)
        + '<script id="__NUXT_DATA__" type="application/json">[1]</script>'
    )
    assert extract_embedded(html).category == "nextjs-embedded"


def test_broken_next_json_falls_through_to_nuxt():
    html = _page(
        '<script id="__NEXT_DATA__" type="application/json">{"props": </script>'
        '<script id="__NUXT_DATA__" type="application/json">{"ok": true}</script>'
    )
    raw = extract_embedded(html)
    assert raw.category == "nuxt-embedded"
    assert raw.data == {"ok": True}


def test_legacy_nuxt_object_literal():
    script = (
        "<script>window.__NUXT__={layout:'default', data:[{title:'Hello', count: 3,}],"
        " state: {user: undefined, ready: true},};</script>"
    )
    raw = extract_embedded(_page(script))
    assert raw.category == "nuxt-embedded"
    assert raw.data == {
        "layout": "default",
        "data": [{"title": "Hello", "count": 3}],
        "state": {"user": None, "ready": True},
    }


def test_legacy_nuxt_without_window_prefix():
    raw = extract_embedded(_page('<script>__NUXT__ = {"a": -1.5e2}</script>'))
    assert raw.data == {"a": -150.0}


def test_legacy_nuxt_function_form_is_not_executed():
    script = "<script>window.__NUXT__=(function(a,b){return {layout:a,data:[b]}}('default',{}));</script>"
    assert extract_embedded(_page(script)) is None


def test_legacy_nuxt_with_call_inside_is_rejected():
    script = "<script>window.__NUXT__={data: fetchData(1)}</script>"
    assert extract_embedded(_page(script)) is None


@pytest.mark.parametrize(
    "html",
    [
        "",
        _page("<p>plain server rendered page</p>"),
        _page("<script>var x = {a: 1};</script>"),
        _page('<script id="__NEXT_DATA__" type="application/json">not json</script>'),
    ],
)
def test_no_embedded_data(html):
    assert extract_embedded(html) is None


def test_normalize_quotes_and_escapes():
    src = "{a: 'say \"hi\"', b: 'it\\'s', 'c d': \"x\"}"
    assert json.loads(normalize_object_literal(src)) == {"a": 'say "hi"', "b": "it's", "c d": "x"}


def test_braces_inside_strings_do_not_end_literal():
    raw = extract_embedded(_page("<script>window.__NUXT__={text:'a } b', n: 1};</script>"))
    assert raw.data == {"text": "a } b", "n": 1}


@pytest.mark.parametrize("src", ["{a: `tpl`}", "{a: 'line\nbreak'}", "{a: b}", "{a: 1"])
def test_parse_object_literal_rejects(src):
    assert parse_object_literal(src) is None


def test_deeply_nested_state_is_ignored():
    html = _page(
        '<script id="__NEXT_DATA__" type="application/json">' + "[" * 100000 + "]" * 100000 + "</script>"
    )
    assert extract_embedded(html) is None

    literal = "{a:" * 300 + "1" + "}" * 300
    assert parse_object_literal(literal) is None
    assert extract_embedded(_page(f"<script>window.__NUXT__={literal};</script>")) is None
