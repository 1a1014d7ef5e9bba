"""Per-run set of URLs already enqueued or processed."""

from __future__ import annotations

from typing import Iterable, Iterator


class VisitedSet:
    """URLs claimed by one crawl run.

    :meth:`mark` checks and inserts without yielding to the event loop, so two
    tasks in the same batch can never both claim a URL. One instance belongs to
    one run and is passed explicitly to whoever needs it.
    """

    def __init__(self, urls: Iterable[str] = ()):
        self._urls: set[str] = set(urls)

    def mark(self, url: str) -> bool:
        """Claim ``url``. Returns False if it was already claimed."""
        if url in self._urls:
            return False
        self._urls.add(url)
        return True

    def claim(self, urls: Iterable[str]) -> list[str]:
        """Claim every unseen URL in ``urls``; return the newly claimed ones in order."""
        return [url for url in urls if self.mark(url)]

    def unseen(self, urls: Iterable[str]) -> set[str]:
        return {url for url in urls if url not in self._urls}

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)
