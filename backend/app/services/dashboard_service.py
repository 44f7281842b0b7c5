import logging
import time
from collections.abc import Sequence
from datetime import date

import nh3
from fastapi import HTTPException, status

from app.config import settings
from app.models.ticket import Ticket
from app.schemas.dashboard import DashboardSummary, DashboardView, GalleryView
from app.schemas.ticket import TicketRow
from app.services import auth_service, stats_service
from app.services.filter_service import Lightbox, build_gallery, filter_tickets
from app.services.ticket_api import TicketApiClient, TicketApiError

logger = logging.getLogger(__name__)

REPLY_SENT = "Reply sent successfully"
TICKET_DELETED = "Ticket deleted successfully"


class DashboardSession:
    """View state of one admin dashboard.

    Holds the last successfully fetched ticket collection, reply drafts,
    the set of tickets with a reply in flight, and the inline message.
    The collection is only ever replaced wholesale; filters and aggregates
    are derived from it.
    """

    def __init__(self, api: TicketApiClient, token: str | None):
        self.api = api
        self.token = token
        self.reply_drafts: dict[str, str] = {}
        self.replying: set[str] = set()
        self.message = ""
        self.error = False
        self.loaded = False
        self.last_used = time.monotonic()

        self._tickets: tuple[Ticket, ...] = ()
        self._version = 0
        self._fetch_seq = 0
        self._summary_cache: tuple[tuple[int, date], DashboardSummary] | None = None

    @property
    def tickets(self) -> tuple[Ticket, ...]:
        return self._tickets

    @property
    def version(self) -> int:
        return self._version

    def touch(self) -> None:
        self.last_used = time.monotonic()

    def _set_message(self, message: str, error: bool = False) -> None:
        self.message = message
        self.error = error

    def _replace_tickets(self, tickets: Sequence[Ticket]) -> None:
        self._tickets = tuple(tickets)
        self._version += 1

    # -----------------------------------------------------------------------
    # Fetch
    # -----------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Refetch every ticket. Returns True if the collection was replaced.

        Each call takes a sequence number; a response that is no longer the
        latest issued is dropped, so a slow fetch cannot overwrite newer state.
        """
        self._fetch_seq += 1
        seq = self._fetch_seq
        try:
            tickets = await self.api.list_all_tickets(self.token)
        except TicketApiError as exc:
            if seq == self._fetch_seq:
                self._set_message(exc.message, error=True)
            return False

        if seq != self._fetch_seq:
            logger.debug("Dropping stale ticket fetch #%d (latest #%d)", seq, self._fetch_seq)
            return False

        self._replace_tickets(tickets)
        self.loaded = True
        if self.error:
            self._set_message("")
        return True

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.refresh()

    # -----------------------------------------------------------------------
    # Actions
    # -----------------------------------------------------------------------

    def set_reply_draft(self, ticket_id: str, text: str) -> None:
        self.reply_drafts[ticket_id] = text

    def clean_draft(self, ticket_id: str) -> str:
        """The stored draft as it would be sent, with markup sanitised."""
        return nh3.clean(self.reply_drafts.get(ticket_id, "")).strip()

    def can_send(self, ticket_id: str) -> bool:
        return bool(self.clean_draft(ticket_id)) and ticket_id not in self.replying

    async def submit_reply(self, ticket_id: str) -> bool:
        """Send the stored draft for ``ticket_id``.

        A draft that is blank once sanitised, or a reply already in flight
        for the same ticket, is refused before any upstream call. Replies to
        other tickets are not blocked.
        """
        text = self.clean_draft(ticket_id)
        if not text:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reply text is required",
            )
        if ticket_id in self.replying:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A reply to this ticket is already being sent",
            )

        self.replying.add(ticket_id)
        try:
            await self.api.reply_to_ticket(self.token, ticket_id, text)
        except TicketApiError as exc:
            self._set_message(exc.message, error=True)
            return False
        finally:
            self.replying.discard(ticket_id)

        self._set_message(REPLY_SENT)
        self.reply_drafts.pop(ticket_id, None)
        await self.refresh()
        return True

    async def delete_ticket(self, ticket_id: str, confirmed: bool) -> bool:
        """Delete a ticket upstream and drop it from the local collection.

        Nothing is sent unless ``confirmed``. The local list is trimmed
        without a refetch.
        """
        if not confirmed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ticket deletion must be confirmed",
            )
        try:
            await self.api.delete_ticket(self.token, ticket_id)
        except TicketApiError as exc:
            self._set_message(exc.message, error=True)
            return False

        # Fetches issued before the delete may still list the ticket
        self._fetch_seq += 1
        self._replace_tickets([t for t in self._tickets if t.id != ticket_id])
        self.reply_drafts.pop(ticket_id, None)
        self._set_message(TICKET_DELETED)
        return True

    # -----------------------------------------------------------------------
    # Views
    # -----------------------------------------------------------------------

    def summary(self, on_day: date | None = None) -> DashboardSummary:
        """Aggregates over the whole collection, memoised per version and day."""
        on_day = on_day or stats_service.today()
        key = (self._version, on_day)
        if self._summary_cache is not None and self._summary_cache[0] == key:
            return self._summary_cache[1]
        summary = stats_service.summarize(self._tickets, on_day)
        self._summary_cache = (key, summary)
        return summary

    def row(self, ticket: Ticket) -> TicketRow:
        owner = ticket.owner
        draft = self.reply_drafts.get(ticket.id, "")
        return TicketRow(
            id=ticket.id,
            owner_name=(owner.name if owner else None) or stats_service.UNKNOWN,
            owner_email=(owner.email if owner else None) or "No Email",
            avatar_url=(owner.profile_pic if owner else None) or settings.default_avatar_url,
            product=ticket.product,
            subject=ticket.subject,
            inquiry=ticket.inquiry,
            image=ticket.image,
            status=ticket.status,
            reply_count=len(ticket.replies),
            reply_draft=draft,
            sending=ticket.id in self.replying,
            can_send=self.can_send(ticket.id),
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )

    def view(
        self,
        search: str = "",
        date_from: date | None = None,
        date_to: date | None = None,
        on_day: date | None = None,
    ) -> DashboardView:
        filtered = filter_tickets(self._tickets, search, date_from, date_to)
        shown = filtered[: settings.recent_tickets_limit]
        return DashboardView(
            summary=self.summary(on_day),
            tickets=[self.row(t) for t in shown],
            showing=len(shown),
            total_filtered=len(filtered),
            gallery=build_gallery(filtered),
            search=search,
            date_from=date_from,
            date_to=date_to,
            message=self.message,
            error=self.error,
            loaded=self.loaded,
        )

    def gallery(
        self,
        search: str = "",
        date_from: date | None = None,
        date_to: date | None = None,
        index: int | None = None,
        image: str | None = None,
    ) -> GalleryView:
        """Gallery of the filtered view, optionally opened at an index or image."""
        lightbox = Lightbox(build_gallery(filter_tickets(self._tickets, search, date_from, date_to)))
        try:
            if image is not None:
                lightbox.open(image)
            elif index is not None:
                lightbox.open_at(index)
        except (ValueError, IndexError):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found in gallery",
            )

        if not lightbox.is_open:
            return GalleryView(images=lightbox.images)
        return GalleryView(
            images=lightbox.images,
            index=lightbox.index,
            main_src=lightbox.main_src,
            next_src=lightbox.images[lightbox.next_index()],
            prev_src=lightbox.images[lightbox.prev_index()],
            title=lightbox.title,
        )


class SessionStore:
    """In-memory dashboard sessions keyed by bearer token.

    Sessions idle longer than ``session_idle_minutes``, or whose token has
    expired, are evicted on the next lookup.
    """

    ANONYMOUS = "anonymous"

    def __init__(self, idle_minutes: int | None = None):
        if idle_minutes is None:
            idle_minutes = settings.session_idle_minutes
        self.idle_seconds = idle_minutes * 60
        self._sessions: dict[str, DashboardSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _key(self, token: str | None) -> str:
        return auth_service.token_key(token) if token else self.ANONYMOUS

    def evict_idle(self) -> int:
        cutoff = time.monotonic() - self.idle_seconds
        stale = [
            key for key, session in self._sessions.items()
            if session.last_used < cutoff
            or (session.token and auth_service.is_token_expired(session.token))
        ]
        for key in stale:
            del self._sessions[key]
        if stale:
            logger.info("Evicted %d dashboard session(s)", len(stale))
        return len(stale)

    def get(self, api: TicketApiClient, token: str | None) -> DashboardSession:
        self.evict_idle()
        key = self._key(token)
        session = self._sessions.get(key)
        if session is None:
            session = DashboardSession(api, token)
            self._sessions[key] = session
            logger.debug(
                "Opened dashboard session for %s",
                auth_service.token_subject(token) if token else self.ANONYMOUS,
            )
        session.api = api
        session.touch()
        return session

    def discard(self, token: str | None) -> None:
        self._sessions.pop(self._key(token), None)
