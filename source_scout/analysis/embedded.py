"""Extraction of framework state serialized into server-rendered HTML.

Patterns, first success wins:

1. ``<script id="__NEXT_DATA__" type="application/json">``: Next.js.
2. ``<script id="__NUXT_DATA__" type="application/json">``: Nuxt 3.
3. ``window.__NUXT__ = {...}``: Nuxt 2 inline assignment. The value is a
   JavaScript object literal, not JSON. It is never executed: a small
   normalizer turns plain literals into JSON (bare keys, single quotes,
   trailing commas, ``undefined``) and anything else, e.g. the minified
   ``(function(a,b){...}(...))`` form, yields no embedded data.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Literal, Optional

from bs4 import BeautifulSoup

from source_scout.analysis.content import nesting_exceeds, safe_json_parse
from source_scout.logger import logger

EmbeddedCategory = Literal["nextjs-embedded", "nuxt-embedded"]

NEXT_DATA_ID = "__NEXT_DATA__"
NUXT_DATA_ID = "__NUXT_DATA__"

_NUXT_ASSIGN_RE = re.compile(r"(?:window\.)?__NUXT__\s*=\s*")
_IDENT_START = re.compile(r"[A-Za-z_$]")
_IDENT_CHAR = re.compile(r"[A-Za-z0-9_$]")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_JS_LITERALS = {"true": "true", "false": "false", "null": "null", "undefined": "null"}


@dataclass(slots=True)
class RawEmbeddedData:
    category: EmbeddedCategory
    data: Any


class ObjectLiteralError(ValueError):
    """The inline script is not a plain object literal."""


def _script_json(soup: BeautifulSoup, script_id: str) -> Optional[Any]:
    tag = soup.find("script", id=script_id)
    if tag is None:
        return None
    return safe_json_parse(tag.string or tag.get_text())


def _balanced_object(text: str, start: int) -> str:
    """Return the ``{...}`` starting at *start*, honouring strings."""
    depth = 0
    quote: Optional[str] = None
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
        i += 1
    raise ObjectLiteralError("unbalanced object literal")


def _read_string(src: str, i: int, out: List[str]) -> int:
    quote = src[i]
    if quote == "`":
        raise ObjectLiteralError("template literals are not supported")
    chars: List[str] = []
    i += 1
    while i < len(src):
        ch = src[i]
        if ch == "\\" and i + 1 < len(src):
            nxt = src[i + 1]
            # \' is valid JS but not JSON
            chars.append("'" if nxt == "'" else ch + nxt)
            i += 2
            continue
        if ch == quote:
            out.append('"' + "".join(chars) + '"')
            return i + 1
        if ch == "\n":
            raise ObjectLiteralError("line break inside string")
        chars.append('\\"' if ch == '"' else ch)
        i += 1
    raise ObjectLiteralError("unterminated string")


def _next_significant(src: str, i: int) -> str:
    while i < len(src) and src[i].isspace():
        i += 1
    return src[i] if i < len(src) else ""


def normalize_object_literal(src: str) -> str:
    """Rewrite a plain JavaScript object literal as JSON text."""
    out: List[str] = []
    i = 0
    while i < len(src):
        ch = src[i]
        if ch in "\"'`":
            i = _read_string(src, i, out)
            continue
        number = _NUMBER_RE.match(src, i)
        if number:
            out.append(number.group())
            i = number.end()
            continue
        if _IDENT_START.match(ch):
            j = i + 1
            while j < len(src) and _IDENT_CHAR.match(src[j]):
                j += 1
            word = src[i:j]
            if _next_significant(src, j) == ":":
                out.append(json.dumps(word))
            elif word in _JS_LITERALS:
                out.append(_JS_LITERALS[word])
            else:
                raise ObjectLiteralError(f"unsupported identifier {word!r}")
            i = j
            continue
        if ch in "}]":
            # drop trailing comma
            while out and out[-1].isspace():
                out.pop()
            if out and out[-1] == ",":
                out.pop()
        elif ch == "(":
            raise ObjectLiteralError("function calls are not supported")
        out.append(ch)
        i += 1
    return "".join(out)


def parse_object_literal(src: str) -> Optional[Any]:
    try:
        data = json.loads(normalize_object_literal(src))
    except (ObjectLiteralError, json.JSONDecodeError, RecursionError) as exc:
        logger.debug("Inline object literal rejected: %s", exc)
        return None
    if nesting_exceeds(data):
        logger.debug("Inline object literal rejected: nested too deeply")
        return None
    return data


def _legacy_nuxt(soup: BeautifulSoup) -> Optional[Any]:
    for tag in soup.find_all("script"):
        text = tag.string or ""
        match = _NUXT_ASSIGN_RE.search(text)
        if not match:
            continue
        start = match.end()
        if start >= len(text) or text[start] != "{":
            logger.debug("window.__NUXT__ is not an object literal, skipping")
            return None
        try:
            literal = _balanced_object(text, start)
        except ObjectLiteralError as exc:
            logger.debug("window.__NUXT__ rejected: %s", exc)
            return None
        return parse_object_literal(literal)
    return None


def extract_embedded(html: str) -> Optional[RawEmbeddedData]:
    """Find framework state in *html*; Next.js wins over Nuxt."""
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    data = _script_json(soup, NEXT_DATA_ID)
    if data is not None:
        return RawEmbeddedData("nextjs-embedded", data)
    data = _script_json(soup, NUXT_DATA_ID)
    if data is None:
        data = _legacy_nuxt(soup)
    if data is not None:
        return RawEmbeddedData("nuxt-embedded", data)
    return None


__all__ = [
    "EmbeddedCategory",
    "RawEmbeddedData",
    "extract_embedded",
    "normalize_object_literal",
    "parse_object_literal",
]
