"""Tests for the end-to-end monitoring pipeline."""

import asyncio
from decimal import Decimal

import pytest

from shopzap.errors import (
    ExtractionFailedError,
    InvalidInputError,
    PersistenceError,
    ProductNotFoundError,
    RenderError,
)
from shopzap.models import MonitoringTask, StockStatus

URL = "https://www.amazon.in/dp/X"
OUT_OF_STOCK_PAGE = {
    "#productTitle": "Widget",
    ".a-price-whole": "999",
    "#availability span": "Currently unavailable.",
}
IN_STOCK_PAGE = {
    "#productTitle": "Widget",
    ".a-price-whole": "1,049",
    "#availability span": "In stock",
}


@pytest.mark.asyncio
async def test_restock_alerts_exactly_once(service, renderer, dispatcher, notifier, store):
    renderer.set_page(URL, OUT_OF_STOCK_PAGE)
    first = await service.scrape_product(URL)

    renderer.set_page(URL, IN_STOCK_PAGE)
    second = await service.scrape_product(URL)
    third = await service.scrape_product(URL)
    await dispatcher.drain()

    assert (first.alerted, second.alerted, third.alerted) == (False, True, False)
    assert len(notifier.messages) == 1
    assert notifier.messages[0].startswith("Stock Alert: Widget is now IN STOCK!")
    assert URL in notifier.messages[0]

    history = service.get_history(URL)
    assert [obs.stock for obs in history.observations] == [
        StockStatus.OUT_OF_STOCK,
        StockStatus.IN_STOCK,
        StockStatus.IN_STOCK,
    ]
    assert store.product_saves == 3


@pytest.mark.asyncio
async def test_first_observation_never_alerts(service, renderer, dispatcher, notifier):
    renderer.set_page(URL, IN_STOCK_PAGE)

    result = await service.scrape_product(URL)
    await dispatcher.drain()

    assert result.alerted is False
    assert notifier.messages == []


@pytest.mark.asyncio
async def test_result_carries_price_history(service, renderer):
    renderer.set_page(URL, IN_STOCK_PAGE)

    result = await service.scrape_product(URL)
    payload = result.to_dict()

    assert result.record.numeric_price == Decimal("1049")
    assert payload["numeric_price"] == 1049.0
    assert payload["priceHistory"][0]["price"] == "1049"
    assert payload["priceHistory"][0]["stock"] == "in_stock"


@pytest.mark.asyncio
async def test_history_capped_through_pipeline(service, renderer):
    renderer.set_page(URL, IN_STOCK_PAGE)

    for _ in range(7):
        await service.scrape_product(URL)

    assert len(service.get_history(URL).observations) == 5


@pytest.mark.asyncio
async def test_default_without_selector_fails_before_rendering(service, renderer):
    with pytest.raises(InvalidInputError, match="Selector is required"):
        await service.scrape_product("https://shop.example.com/item/9")

    assert renderer.opened == []


@pytest.mark.asyncio
async def test_missing_url(service, renderer):
    with pytest.raises(InvalidInputError, match="URL is required"):
        await service.scrape_product("   ")

    assert renderer.opened == []


@pytest.mark.asyncio
async def test_render_failure_is_reported(service, renderer, store):
    renderer.failing.add(URL)

    with pytest.raises(RenderError) as exc_info:
        await service.scrape_product(URL)

    assert "Failed to load" in str(exc_info.value)
    assert store.product_saves == 0
    with pytest.raises(ProductNotFoundError):
        service.get_history(URL)


@pytest.mark.asyncio
async def test_session_released_when_extraction_fails(service, renderer):
    renderer.set_page(URL, {})

    with pytest.raises(ExtractionFailedError):
        await service.scrape_product(URL)

    assert renderer.opened == [URL]
    assert renderer.closed == [URL]


@pytest.mark.asyncio
async def test_title_only_page_records_nothing(service, renderer, store):
    renderer.set_page(URL, {"#productTitle": "Widget"})

    result = await service.scrape_product(URL)

    assert result.record.title == "Widget"
    assert result.history is None
    assert store.product_saves == 0


@pytest.mark.asyncio
async def test_persistence_failure_keeps_memory(service, renderer, store):
    renderer.set_page(URL, IN_STOCK_PAGE)
    store.fail_writes = True

    with pytest.raises(PersistenceError):
        await service.scrape_product(URL)

    assert service.get_history(URL).latest.stock == StockStatus.IN_STOCK


@pytest.mark.asyncio
async def test_scrape_many_reports_per_item(service, renderer):
    renderer.set_page(URL, IN_STOCK_PAGE)
    renderer.set_page("https://shop.example.com/item/9", {"#price": "Rs 250"})
    renderer.failing.add("https://www.flipkart.com/p")

    results = await service.scrape_many(
        [
            URL,
            {"url": "https://shop.example.com/item/9", "selector": "#price"},
            "https://shop.example.com/no-selector",
            "https://www.flipkart.com/p",
        ]
    )

    assert [item["url"] for item in results] == [
        URL,
        "https://shop.example.com/item/9",
        "https://shop.example.com/no-selector",
        "https://www.flipkart.com/p",
    ]
    assert results[0]["title"] == "Widget"
    assert results[1]["data"] == "Rs 250"
    assert "Selector is required" in results[2]["error"]
    assert "Failed to load" in results[3]["error"]


@pytest.mark.asyncio
async def test_run_task_uses_task_selector(service, renderer):
    url = "https://shop.example.com/item/9"
    renderer.set_page(url, {"#price": "Rs 250"})

    result = await service.run_task(MonitoringTask(task_id="t1", url=url, schedule="* * * * *", selector="#price"))

    assert result.record.data == "Rs 250"
    assert result.record.adapter == "default"


@pytest.mark.asyncio
async def test_concurrent_scrapes_of_one_product_alert_once(service, renderer, dispatcher, notifier):
    renderer.set_page(URL, OUT_OF_STOCK_PAGE)
    await service.scrape_product(URL)

    renderer.set_page(URL, IN_STOCK_PAGE)
    first, second = await asyncio.gather(service.scrape_product(URL), service.scrape_product(URL))
    await dispatcher.drain()

    history = service.get_history(URL)
    assert [obs.stock for obs in history.observations] == [
        StockStatus.OUT_OF_STOCK,
        StockStatus.IN_STOCK,
        StockStatus.IN_STOCK,
    ]
    assert sorted([first.alerted, second.alerted]) == [False, True]
    assert len(notifier.messages) == 1


@pytest.mark.asyncio
async def test_product_locks_are_released(service, renderer):
    renderer.set_page(URL, IN_STOCK_PAGE)
    renderer.set_page("https://www.flipkart.com/p", {"div._30jeq3._16Jk6d": "₹499"})

    await asyncio.gather(service.scrape_product(URL), service.scrape_product("https://www.flipkart.com/p"))

    assert len(service._locks) == 0
