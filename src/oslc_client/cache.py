from __future__ import annotations

from collections import OrderedDict
from typing import Optional

DEFAULT_MAX_SIZE = 1024


class OwnerCache:
    """
    Least-recently-used cache of owner URL -> display name.

    Not synchronized: it is shared by every coroutine using one client and
    relies on asyncio's cooperative scheduling. Guard it with a lock before
    sharing a client across threads.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[str, str] = OrderedDict()
        self.evictions = 0

    def get(self, url: str) -> Optional[str]:
        try:
            self._entries.move_to_end(url)
        except KeyError:
            return None
        return self._entries[url]

    def set(self, url: str, name: str) -> None:
        self._entries[url] = name
        self._entries.move_to_end(url)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self.evictions += 1

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["OwnerCache", "DEFAULT_MAX_SIZE"]
