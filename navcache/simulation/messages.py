"""Request and response records exchanged by simulated clients and server."""

from dataclasses import dataclass

from navcache.core.events import NO_PAGE, PageContent, PageId


@dataclass
class PageRequest:
    """A client's request for one page."""

    request_id: int
    client_id: int
    page: PageId
    from_page: PageId = NO_PAGE  # Previous page of the client, for pattern tracking
    sent_at: float = 0.0

    @property
    def url(self) -> str:
        return f"/pages/{self.page}"


@dataclass
class PageResponse:
    """The server's answer to a PageRequest."""

    request_id: int
    client_id: int
    page: PageId
    content: PageContent
    ttl: float = 3600.0
    cacheable: bool = True
    served_from_cache: bool = False
    completed_at: float = 0.0

    @property
    def content_size(self) -> int:
        return self.content.size

    def is_expired(self, now: float) -> bool:
        """Whether a client copy received at ``completed_at`` is stale."""
        return self.ttl > 0 and now >= self.completed_at + self.ttl
