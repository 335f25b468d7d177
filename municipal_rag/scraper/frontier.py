"""
Crawl frontier: the URL queue and visited set, owned by a single object.
"""

from __future__ import annotations

from collections import deque

# Substrings that move a discovered URL to the front of the queue
PRIORITY_KEYWORDS = (
    "bylaw",
    "budget",
    "finance",
    "council",
    "department",
    "policy",
    "document",
)


class Frontier:
    """
    FIFO queue with a front-insertion override and a visited set.

    URLs are compared as exact strings.
    """

    def __init__(
        self,
        seeds: list[str] | None = None,
        priority_keywords: tuple[str, ...] = PRIORITY_KEYWORDS,
    ):
        self._queue: deque[str] = deque()
        self._queued: set[str] = set()
        self._visited: dict[str, None] = {}
        self.priority_keywords = priority_keywords

        for url in seeds or []:
            self.push_back(url)

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __contains__(self, url: str) -> bool:
        return url in self._queued

    @property
    def visited(self) -> list[str]:
        """Visited URLs in dequeue order."""
        return list(self._visited)

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    def is_known(self, url: str) -> bool:
        """True if the URL was already visited or is waiting in the queue."""
        return url in self._visited or url in self._queued

    def is_priority(self, url: str) -> bool:
        lowered = url.lower()
        return any(keyword in lowered for keyword in self.priority_keywords)

    def push_back(self, url: str) -> bool:
        if self.is_known(url):
            return False
        self._queue.append(url)
        self._queued.add(url)
        return True

    def push_front(self, url: str) -> bool:
        if self.is_known(url):
            return False
        self._queue.appendleft(url)
        self._queued.add(url)
        return True

    def push_many_front(self, urls: list[str]) -> int:
        """
        Insert URLs at the front, keeping their relative order.

        Returns:
            Number of URLs actually added
        """
        fresh = []
        for url in urls:
            if not self.is_known(url) and url not in fresh:
                fresh.append(url)
        for url in reversed(fresh):
            self.push_front(url)
        return len(fresh)

    def push(self, url: str) -> bool:
        """Enqueue a discovered link, honoring the keyword priority."""
        if self.is_priority(url):
            return self.push_front(url)
        return self.push_back(url)

    def pop(self) -> str | None:
        """
        Dequeue the next unvisited URL and mark it visited.

        Returns:
            The URL, or None when the queue holds nothing new
        """
        while self._queue:
            url = self._queue.popleft()
            self._queued.discard(url)
            if url in self._visited:
                continue
            self._visited[url] = None
            return url
        return None
