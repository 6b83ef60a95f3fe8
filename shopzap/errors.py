"""Error types raised by the monitoring engine."""


class ShopzapError(Exception):
    """Base class for monitoring errors."""


class InvalidInputError(ShopzapError):
    """Missing or contradictory caller input. Raised before any side effect."""


class ExtractionFailedError(ShopzapError):
    """A page was rendered but none of the adapter's fields could be read."""

    def __init__(self, url: str, reason: str = "Could not scrape data. Element(s) not found or site not supported."):
        self.url = url
        self.reason = reason
        super().__init__(reason)


class RenderError(ExtractionFailedError):
    """Browser, proxy or network failure while rendering a page."""

    def __init__(self, url: str, reason: str):
        super().__init__(url, f"Failed to load {url}: {reason}")


class TaskNotFoundError(ShopzapError):
    """No scheduled task exists with the given id."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Scheduled task not found: {task_id}")


class ProductNotFoundError(ShopzapError):
    """No history is tracked for the given product identity."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Product not tracked: {identity}")


class PersistenceError(ShopzapError):
    """The durable store could not be read or written."""
