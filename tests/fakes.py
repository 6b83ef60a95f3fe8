"""
Fakes for the browser, the durable store and the webhook.

They let the pipeline be exercised without Playwright or network access.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from shopzap.errors import PersistenceError, RenderError


class FakePage:
    """Page handle backed by a locator -> text mapping."""

    def __init__(self, url: str, texts: Optional[dict] = None, rows: Optional[list] = None, broken: tuple = ()):
        self.url = url
        self.texts = texts or {}
        self.rows = rows or []
        self.broken = set(broken)
        self.queried: list[str] = []

    async def text_of(self, locator: str) -> Optional[str]:
        self.queried.append(locator)
        await asyncio.sleep(0)
        if locator in self.broken:
            raise RuntimeError(f"element detached: {locator}")
        text = self.texts.get(locator)
        if not text:
            return None
        return text.strip() or None

    async def evaluate(self, locator: str) -> Optional[str]:
        return await self.text_of(locator)

    async def collect(self, item_locator: str, fields: dict, limit: int) -> list[dict]:
        return self.rows[:limit]


class FakeRenderer:
    """Renderer that serves FakePages and records every open and close."""

    def __init__(self, pages: Optional[dict] = None, failing: tuple = ()):
        self.pages = pages or {}
        self.failing = set(failing)
        self.opened: list[str] = []
        self.closed: list[str] = []

    def set_page(self, url: str, texts: dict) -> None:
        self.pages[url] = texts

    async def open(self, url: str) -> FakePage:
        self.opened.append(url)
        if url in self.failing:
            raise RenderError(url, "net::ERR_PROXY_CONNECTION_FAILED")
        content = self.pages.get(url, {})
        if isinstance(content, FakePage):
            return content
        return FakePage(url, content)

    async def close(self, page: FakePage) -> None:
        self.closed.append(page.url)

    @asynccontextmanager
    async def session(self, url: str):
        page = await self.open(url)
        try:
            yield page
        finally:
            await self.close(page)

    async def shutdown(self) -> None:
        pass


class MemoryStore:
    """In-memory PersistedStore that can be told to fail writes."""

    def __init__(self, products=None, tasks=None):
        self.products = list(products or [])
        self.tasks = list(tasks or [])
        self.product_saves = 0
        self.task_saves = 0
        self.fail_writes = False

    async def load_products(self):
        return list(self.products)

    async def save_products(self, products):
        await asyncio.sleep(0)
        if self.fail_writes:
            raise PersistenceError("disk full")
        self.products = list(products)
        self.product_saves += 1

    async def load_tasks(self):
        return list(self.tasks)

    async def save_tasks(self, tasks):
        if self.fail_writes:
            raise PersistenceError("disk full")
        self.tasks = list(tasks)
        self.task_saves += 1

    async def close(self):
        pass


class RecordingNotifier:
    """Notification sink that remembers messages."""

    def __init__(self, succeed: bool = True):
        self.messages: list[str] = []
        self.succeed = succeed

    async def notify(self, message: str) -> bool:
        self.messages.append(message)
        return self.succeed

