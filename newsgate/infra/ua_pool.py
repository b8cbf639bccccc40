"""User-Agent pool used to build browser-like request headers."""

from __future__ import annotations

import random
from pathlib import Path
from typing import Iterable, List

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class UserAgentPool:
    """Return random user agents from the configured pool.

    An empty pool always answers with a desktop Chrome user agent, since
    several providers reject the default client identifier outright.
    """

    def __init__(self, user_agents: Iterable[str] | None = None, file_path: Path | None = None) -> None:
        self._uas: List[str] = []
        if user_agents:
            self._uas.extend(ua.strip() for ua in user_agents if ua.strip())
        if file_path and file_path.exists():
            lines = file_path.read_text(encoding="utf-8").splitlines()
            self._uas.extend(line.strip() for line in lines if line.strip())

    def get(self) -> str:
        if not self._uas:
            return DEFAULT_USER_AGENT
        return random.choice(self._uas)

    def refresh(self, user_agents: Iterable[str]) -> None:
        self._uas = [ua.strip() for ua in user_agents if ua.strip()]

    def __len__(self) -> int:
        return len(self._uas)


__all__ = ["DEFAULT_USER_AGENT", "UserAgentPool"]
