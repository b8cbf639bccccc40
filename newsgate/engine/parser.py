"""DOM parsing of provider listing pages into candidate items."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable
from urllib.parse import urljoin

from selectolax.parser import HTMLParser, Node

from ..config import ProviderConfig

_SKIPPED_HREF_PREFIXES = ("javascript:", "#", "mailto:", "tel:")


@dataclass
class ParsedItem:
    """One headline found on a listing page, before relevance filtering."""

    title: str
    url: str
    summary: str | None = None
    published_at: datetime | None = None

    @property
    def text(self) -> str:
        return " ".join(part for part in (self.title, self.summary or "", self.url) if part)


class Parser:
    """Parse listing pages according to a provider's selector lists."""

    def parse_listing(self, provider: ProviderConfig, html: str, page_url: str) -> list[ParsedItem]:
        tree = HTMLParser(html)
        nodes = self._collect(tree, provider.item_selectors)
        if not nodes and provider.link_fallback_selector:
            nodes = [
                node
                for node in tree.css(provider.link_fallback_selector)
                if self._is_candidate_anchor(node, provider.link_must_contain)
            ]

        items: list[ParsedItem] = []
        seen: set[str] = set()
        base = provider.base_url or page_url
        for node in nodes:
            item = self._parse_item(provider, node, base)
            if item is None or item.url in seen:
                continue
            seen.add(item.url)
            items.append(item)
        return items

    # ------------------------------------------------------------------
    def _parse_item(self, provider: ProviderConfig, node: Node, base_url: str) -> ParsedItem | None:
        if node.tag == "a":
            title = node.text(separator=" ", strip=True)
            href = node.attributes.get("href")
            summary = None
        else:
            title = self._first_text(node, provider.title_selectors)
            href = self._first_href(node, provider.link_selectors)
            summary = self._first_text(node, provider.summary_selectors)
        if not title or not href:
            return None
        url = self._absolute(href, base_url)
        if url is None:
            return None
        if summary == title:
            summary = None
        return ParsedItem(
            title=title,
            url=url,
            summary=summary or None,
            published_at=self._first_timestamp(node, provider.time_selectors),
        )

    @staticmethod
    def _collect(tree: HTMLParser, selectors: Iterable[str]) -> list[Node]:
        nodes: list[Node] = []
        for selector in selectors:
            nodes.extend(tree.css(selector))
        return nodes

    @staticmethod
    def _is_candidate_anchor(node: Node, must_contain: str | None) -> bool:
        href = (node.attributes.get("href") or "").strip()
        if not href or not node.text(strip=True):
            return False
        return must_contain is None or must_contain in href

    @staticmethod
    def _first_text(node: Node, selectors: Iterable[str]) -> str | None:
        for selector in selectors:
            found = node.css_first(selector)
            if found is None:
                continue
            text = found.text(separator=" ", strip=True)
            if text:
                return text
        return None

    @staticmethod
    def _first_href(node: Node, selectors: Iterable[str]) -> str | None:
        for selector in selectors:
            found = node.css_first(selector)
            if found is None:
                continue
            href = found.attributes.get("href")
            if href is None and found.tag != "a":
                anchor = found.css_first("a[href]")
                href = anchor.attributes.get("href") if anchor is not None else None
            if href and href.strip():
                return href.strip()
        return None

    @staticmethod
    def _first_timestamp(node: Node, selectors: Iterable[str]) -> datetime | None:
        for selector in selectors:
            found = node.css_first(selector)
            if found is None:
                continue
            raw = found.attributes.get("datetime") or found.text(strip=True)
            parsed = parse_timestamp(raw)
            if parsed is not None:
                return parsed
        return None

    @staticmethod
    def _absolute(href: str, base_url: str) -> str | None:
        href = href.strip()
        if not href or href.startswith(_SKIPPED_HREF_PREFIXES):
            return None
        if href.startswith(("http://", "https://")):
            return href
        return urljoin(base_url.rstrip("/") + "/", href)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""

    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["ParsedItem", "Parser", "parse_timestamp"]
