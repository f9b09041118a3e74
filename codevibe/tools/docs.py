"""
Documentation lookup tool.

Topics are resolved against a small keyword index of canonical Next.js
documentation pages. Fetched pages are stripped to text, truncated, and
cached per resolved topic for a configurable time-to-live.
"""

from __future__ import annotations

import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, Field

from ..config import DocsConfig
from ..infra.logging import get_logger
from ..types import ToolContext, ToolDefinition
from .schema import PydanticSchema

logger = get_logger(__name__)

_BASE = "https://nextjs.org/docs/app/building-your-application"


@dataclass(frozen=True)
class DocsEntry:
    keywords: tuple[str, ...]
    url: str
    title: str


DOCS_INDEX: tuple[DocsEntry, ...] = (
    DocsEntry(("app router", "app directory", "routing", "route segment"), "https://nextjs.org/docs/app", "App Router"),
    DocsEntry(("pages router", "pages directory"), "https://nextjs.org/docs/pages", "Pages Router"),
    DocsEntry(("data fetching", "fetch", "fetching"), f"{_BASE}/data-fetching/fetching", "Data Fetching (fetch API)"),
    DocsEntry(("server actions", "actions"), f"{_BASE}/data-fetching/server-actions", "Server Actions"),
    DocsEntry(("api routes", "api route", "route handlers", "route handler"), f"{_BASE}/routing/route-handlers", "Route Handlers (API)"),
    DocsEntry(("middleware",), f"{_BASE}/routing/middleware", "Middleware"),
    DocsEntry(("metadata", "head"), f"{_BASE}/optimizing/metadata", "Metadata API"),
    DocsEntry(("image", "next/image"), f"{_BASE}/optimizing/images", "Image Optimization"),
    DocsEntry(("link", "next/link"), f"{_BASE}/routing/linking-and-navigating", "Linking & Navigating"),
    DocsEntry(("static generation", "ssg"), f"{_BASE}/rendering/static-and-dynamic-rendering", "Static & Dynamic Rendering"),
    DocsEntry(("incremental static regeneration", "isr"), f"{_BASE}/caching#revalidating-data", "Revalidation (ISR)"),
    DocsEntry(("dynamic rendering", "streaming", "rsc"), f"{_BASE}/rendering/server-components", "React Server Components"),
    DocsEntry(("env", "environment variables"), f"{_BASE}/configuring/environment-variables", "Environment Variables"),
    DocsEntry(("next config", "next.config.js", "configuration"), "https://nextjs.org/docs/app/api-reference/next-config-js", "next.config.js"),
    DocsEntry(("deployment", "vercel deploy"), f"{_BASE}/deploying", "Deployment"),
)


def resolve_topic(raw: str) -> DocsEntry | None:
    """Exact keyword match first, then substring containment."""
    topic = raw.lower().strip()
    for entry in DOCS_INDEX:
        if topic in entry.keywords:
            return entry
    for entry in DOCS_INDEX:
        if any(k in topic for k in entry.keywords):
            return entry
    return None


_SCRIPT_STYLE = re.compile(r"<(script|style)[\s\S]*?</\1>", re.IGNORECASE)
_BLOCK_TAG = re.compile(r"<(p|div|h[1-6]|section|article|ul|ol|li|pre|code|blockquote)[^>]*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]+>")
_ENTITIES = {
    "&nbsp;": " ", "&quot;": '"', "&#39;": "'", "&lt;": "<", "&gt;": ">", "&amp;": "&",
}


def strip_html(html: str) -> str:
    text = _SCRIPT_STYLE.sub("", html)
    text = _BLOCK_TAG.sub(lambda m: "\n" + m.group(0), text)
    text = _ANY_TAG.sub("", text)
    for entity, char in _ENTITIES.items():
        text = text.replace(entity, char)
    return "\n".join(line.strip() for line in text.split("\n") if line.strip())


Fetcher = Callable[[str], Awaitable[str]]


class DocsLookup:
    """Resolve, fetch, and cache documentation excerpts."""

    def __init__(
        self,
        config: DocsConfig | None = None,
        fetcher: Fetcher | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or DocsConfig()
        self._fetcher = fetcher or self._http_fetch
        self._clock = clock
        self._cache: dict[str, tuple[float, str]] = {}

    async def excerpt(self, entry: DocsEntry) -> str:
        cached = self._cache.get(entry.url)
        now = self._clock()
        if cached and now - cached[0] < self.config.cache_ttl_seconds:
            return cached[1]
        text = strip_html(await self._fetcher(entry.url))
        limit = self.config.max_excerpt_chars
        if len(text) > limit:
            text = text[:limit] + "\n... (truncated)"
        self._cache[entry.url] = (now, text)
        return text

    async def lookup(self, topic: str, query: str | None = None) -> str:
        entry = resolve_topic(topic)
        if entry is None:
            return (
                f'No direct match found for "{topic}". Try a more specific Next.js concept '
                '(e.g. "app router", "middleware", "server actions").'
            )
        try:
            content = await self.excerpt(entry)
        except (httpx.HTTPError, OSError) as e:
            logger.warning("docs.fetch_failed", url=entry.url, error=str(e))
            return f"Failed retrieving Next.js docs for {entry.title} ({entry.url}): {e}"

        if query:
            q = query.lower()
            matched = [line for line in content.split("\n") if q in line.lower()]
            if matched:
                preview = "\n".join(matched[:8])
                return (
                    f"Next.js Docs: {entry.title}\nSource: {entry.url}\nQuery: {query}\n"
                    f"--- Filtered Matches ---\n{preview}"
                )
        return f"Next.js Docs: {entry.title}\nSource: {entry.url}\n--- Excerpt ---\n{content}"

    async def _http_fetch(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.request_timeout_seconds),
            headers={"User-Agent": "codevibe-agent/1.0 (+docs-tool)"},
            follow_redirects=True,
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.text


class DocsParams(BaseModel):
    topic: str = Field(..., min_length=1, description='Next.js topic or API, e.g. "app router"')
    query: str | None = Field(
        None, min_length=2, description="Optional term to filter lines within the excerpt"
    )


def docs_tool(lookup: DocsLookup) -> ToolDefinition:
    async def _execute(params: DocsParams, ctx: ToolContext) -> str:
        return await lookup.lookup(params.topic, params.query)

    return ToolDefinition(
        name="get_nextjs_docs",
        description=(
            "Fetch and summarize official Next.js documentation for a topic; "
            "optional query filters lines containing a term."
        ),
        parameters=PydanticSchema(DocsParams),
        execute=_execute,
    )
