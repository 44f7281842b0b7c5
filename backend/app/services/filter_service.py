from collections.abc import Iterable
from datetime import date, datetime, time, tzinfo

from app.models.ticket import Ticket
from app.services.stats_service import report_tz


def matches_search(ticket: Ticket, search: str) -> bool:
    """Case-insensitive substring match against owner name or email."""
    if not search:
        return True
    needle = search.lower()
    owner = ticket.owner
    if owner is None:
        return False
    return any(needle in value.lower() for value in (owner.name, owner.email) if value)


def matches_dates(
    ticket: Ticket,
    date_from: date | None,
    date_to: date | None,
    tz: tzinfo | None = None,
) -> bool:
    """Check ``created_at`` against an inclusive whole-day range."""
    tz = tz or report_tz()
    if date_from is not None:
        if ticket.created_at < datetime.combine(date_from, time.min, tzinfo=tz):
            return False
    if date_to is not None:
        if ticket.created_at > datetime.combine(date_to, time.max, tzinfo=tz):
            return False
    return True


def filter_tickets(
    tickets: Iterable[Ticket],
    search: str = "",
    date_from: date | None = None,
    date_to: date | None = None,
    tz: tzinfo | None = None,
) -> list[Ticket]:
    """Return the tickets matching both the text search and the date range.

    The input is never modified; a new list is returned.
    """
    tz = tz or report_tz()
    search = search or ""
    return [
        t for t in tickets
        if matches_search(t, search) and matches_dates(t, date_from, date_to, tz)
    ]


def build_gallery(tickets: Iterable[Ticket]) -> list[str]:
    """Image references of ``tickets`` in order, skipping tickets without one."""
    return [t.image for t in tickets if t.image]


class Lightbox:
    """Index arithmetic for paging through a gallery with wrap-around."""

    def __init__(self, images: list[str]):
        self.images = list(images)
        self.index: int | None = None

    @property
    def is_open(self) -> bool:
        return self.index is not None

    def open(self, image: str) -> int:
        """Open at ``image``; raises ValueError if it is not in the gallery."""
        self.index = self.images.index(image)
        return self.index

    def open_at(self, index: int) -> int:
        if not self.images:
            raise IndexError("gallery is empty")
        if not 0 <= index < len(self.images):
            raise IndexError(f"gallery index {index} out of range")
        self.index = index
        return index

    def close(self) -> None:
        self.index = None

    def _require_open(self) -> int:
        if self.index is None:
            raise RuntimeError("lightbox is closed")
        return self.index

    def next_index(self) -> int:
        return (self._require_open() + 1) % len(self.images)

    def prev_index(self) -> int:
        return (self._require_open() + len(self.images) - 1) % len(self.images)

    def next(self) -> int:
        self.index = self.next_index()
        return self.index

    def previous(self) -> int:
        self.index = self.prev_index()
        return self.index

    @property
    def main_src(self) -> str | None:
        return self.images[self.index] if self.index is not None else None

    @property
    def title(self) -> str | None:
        if self.index is None:
            return None
        return f"Ticket Image {self.index + 1} of {len(self.images)}"
