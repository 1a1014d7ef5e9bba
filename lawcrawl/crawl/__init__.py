from .discover import LinkDiscoverer
from .frontier import CrawlStats, Frontier
from .visited import VisitedSet

__all__ = ["CrawlStats", "Frontier", "LinkDiscoverer", "VisitedSet"]
