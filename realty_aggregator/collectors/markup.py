from __future__ import annotations

import html
import re

from realty_aggregator.core.normalize import safe_float


def _class_pattern(css_class: str) -> str:
    return rf'class="[^"]*(?<![\w-]){re.escape(css_class)}(?![\w-])[^"]*"'


def split_blocks(page_html: str, css_class: str) -> list[str]:
    """Slice a result page into one chunk per element carrying `css_class`."""
    starts = [
        match.start()
        for match in re.finditer(rf"<\w+\b[^>]*{_class_pattern(css_class)}", page_html, flags=re.IGNORECASE)
    ]
    return [page_html[start:end] for start, end in zip(starts, starts[1:] + [len(page_html)])]


def element_html(fragment: str, css_class: str) -> str | None:
    match = re.search(
        rf"<(?P<tag>\w+)\b[^>]*{_class_pattern(css_class)}[^>]*>(?P<body>.*?)</(?P=tag)>",
        fragment,
        flags=re.IGNORECASE | re.DOTALL,
    )
    return match.group("body") if match else None


def element_texts(fragment: str, css_class: str) -> list[str]:
    return [
        strip_tags(match.group("body"))
        for match in re.finditer(
            rf"<(?P<tag>\w+)\b[^>]*{_class_pattern(css_class)}[^>]*>(?P<body>.*?)</(?P=tag)>",
            fragment,
            flags=re.IGNORECASE | re.DOTALL,
        )
    ]


def tag_attribute(fragment: str, tag: str, attribute: str, css_class: str | None = None) -> str | None:
    class_filter = rf"(?=[^>]*{_class_pattern(css_class)})" if css_class else ""
    tag_match = re.search(rf"<{tag}\b{class_filter}[^>]*>", fragment, flags=re.IGNORECASE)
    if not tag_match:
        return None
    attr_match = re.search(rf'\s{re.escape(attribute)}="([^"]*)"', tag_match.group(0), flags=re.IGNORECASE)
    return html.unescape(attr_match.group(1)) if attr_match else None


def strip_tags(raw_html: str) -> str:
    without_tags = re.sub(r"<[^>]+>", " ", raw_html)
    return re.sub(r"\s+", " ", html.unescape(without_tags)).strip()


def parse_price(price_text: str | None) -> float | None:
    if not price_text:
        return None
    digits = re.sub(r"\D", "", price_text)
    return safe_float(digits) if digits else None


def parse_size(title: str | None) -> float | None:
    match = re.search(r"(\d+)\s*m²", title or "")
    return float(match.group(1)) if match else None


def max_page_number(page_html: str, css_class: str) -> int:
    numbers = [int(text) for text in element_texts(page_html, css_class) if text.isdigit()]
    return max(numbers, default=0)
