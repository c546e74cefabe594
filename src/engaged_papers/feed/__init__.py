"""Feed listings of new and rising papers."""

from engaged_papers.feed.feed import Feed, build_feed, list_papers, select_rising


__all__ = ["Feed", "build_feed", "list_papers", "select_rising"]
