"""Outbound proxy selection for browser sessions."""

import logging
import random
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class ProxyInfo:
    """Proxy endpoint parsed from configuration."""

    scheme: str
    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_url(cls, endpoint: str) -> "ProxyInfo":
        """Parse "scheme://[user:pass@]host:port"; the scheme defaults to http."""
        if "://" not in endpoint:
            endpoint = f"http://{endpoint}"
        parsed = urlparse(endpoint)
        if not parsed.hostname or not parsed.port:
            raise ValueError(f"Invalid proxy endpoint: {endpoint}")
        return cls(
            scheme=parsed.scheme,
            host=parsed.hostname,
            port=parsed.port,
            username=parsed.username,
            password=parsed.password,
        )

    @property
    def server(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def playwright_config(self) -> dict:
        """Get proxy config for Playwright."""
        config = {"server": self.server}
        if self.username:
            config["username"] = self.username
        if self.password:
            config["password"] = self.password
        return config


class ProxyPool:
    """Random pick from a static list of proxies, one per browser session."""

    def __init__(self, endpoints: list[str]):
        self._proxies: list[ProxyInfo] = []
        for endpoint in endpoints:
            try:
                self._proxies.append(ProxyInfo.from_url(endpoint))
            except ValueError as e:
                logger.warning(f"Skipping proxy: {e}")

    @property
    def proxy_count(self) -> int:
        return len(self._proxies)

    def has_proxies(self) -> bool:
        return bool(self._proxies)

    def pick(self) -> Optional[ProxyInfo]:
        if not self._proxies:
            return None
        proxy = random.choice(self._proxies)
        logger.info(f"Using proxy: {proxy.server}")
        return proxy
