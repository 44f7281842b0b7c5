import logging
from typing import Any
from urllib.parse import quote

import httpx
import nh3
from pydantic import ValidationError

from app.config import settings
from app.models.ticket import Ticket
from app.models.user import UserProfile

logger = logging.getLogger(__name__)


class TicketApiError(Exception):
    """An upstream call failed.

    ``message`` is always safe to show to the user: the server-supplied
    message when the response carried one, otherwise the per-action fallback.
    ``status_code`` is None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _server_message(response: httpx.Response) -> str | None:
    """Pull a human-readable message out of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _tickets_from(body: Any) -> list:
    if isinstance(body, dict):
        body = body.get("tickets", [])
    if not isinstance(body, list):
        raise TypeError("tickets payload is not a list")
    return body


class TicketApiClient:
    """Thin async client for the remote ticket REST API.

    Every call is all-or-nothing: it either returns parsed data or raises
    ``TicketApiError``. No retries.
    """

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _request(
        self,
        method: str,
        path: str,
        token: str | None,
        fallback: str,
        **kwargs,
    ) -> Any:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TicketApiError(fallback) from exc

        if response.is_error:
            message = _server_message(response) or fallback
            logger.warning(
                "%s %s returned %d: %s", method, path, response.status_code, message
            )
            raise TicketApiError(message, response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise TicketApiError(fallback, response.status_code) from exc

    async def _fetch_tickets(self, path: str, token: str | None, fallback: str) -> list[Ticket]:
        body = await self._request("GET", path, token, fallback)
        try:
            return [Ticket.model_validate(item) for item in _tickets_from(body)]
        except (TypeError, ValidationError) as exc:
            logger.warning("Malformed ticket payload from %s: %s", path, exc)
            raise TicketApiError(fallback) from exc

    # -----------------------------------------------------------------------
    # Admin
    # -----------------------------------------------------------------------

    async def list_all_tickets(self, token: str | None) -> list[Ticket]:
        return await self._fetch_tickets(
            settings.tickets_all_path, token, "Failed to fetch tickets"
        )

    async def reply_to_ticket(self, token: str | None, ticket_id: str, reply: str) -> None:
        await self._request(
            "POST",
            settings.tickets_reply_path,
            token,
            "Failed to send reply",
            json={"ticketId": ticket_id, "reply": nh3.clean(reply)},
        )

    async def delete_ticket(self, token: str | None, ticket_id: str) -> None:
        path = settings.tickets_delete_path.format(ticket_id=quote(ticket_id, safe=""))
        await self._request("DELETE", path, token, "Failed to delete ticket")

    # -----------------------------------------------------------------------
    # Customer
    # -----------------------------------------------------------------------

    async def create_ticket(
        self,
        token: str | None,
        product: str,
        subject: str,
        inquiry: str,
        image: tuple[str, bytes, str] | None = None,
    ) -> tuple[str, Ticket | None]:
        """Submit a new ticket as multipart form data.

        ``image`` is ``(filename, content, content_type)``.
        """
        data = {
            "product": product,
            "subject": subject,
            "inquiry": nh3.clean(inquiry),
        }
        files = {"image": image} if image is not None else None
        body = await self._request(
            "POST",
            settings.tickets_create_path,
            token,
            "Failed to submit ticket",
            data=data,
            files=files,
        )
        ticket = None
        if isinstance(body, dict) and isinstance(body.get("ticket"), dict):
            try:
                ticket = Ticket.model_validate(body["ticket"])
            except ValidationError:
                logger.debug("Created ticket echoed back in an unexpected shape")
        return _message_or(body, "Ticket submitted successfully"), ticket

    async def list_my_tickets(self, token: str | None) -> list[Ticket]:
        return await self._fetch_tickets(
            settings.tickets_mine_path, token, "Failed to fetch your tickets"
        )

    async def get_profile(self, token: str | None) -> UserProfile:
        body = await self._request(
            "GET", settings.user_profile_path, token, "Failed to fetch profile"
        )
        return _profile_from(body, "Failed to fetch profile")

    async def update_profile(self, token: str | None, changes: dict) -> UserProfile:
        payload = {}
        for field, wire_name in (("name", "name"), ("email", "email"), ("profile_pic", "profilePic")):
            if field in changes:
                payload[wire_name] = changes[field]
        body = await self._request(
            "PUT",
            settings.user_profile_path,
            token,
            "Failed to update profile",
            json=payload,
        )
        return _profile_from(body, "Failed to update profile")

    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a bearer token."""
        body = await self._request(
            "POST",
            settings.user_login_path,
            None,
            "Login failed",
            json={"email": email, "password": password},
        )
        token = body.get("token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            raise TicketApiError("Login failed")
        return token


def _message_or(body: Any, default: str) -> str:
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return default


def _profile_from(body: Any, fallback: str) -> UserProfile:
    if isinstance(body, dict) and isinstance(body.get("user"), dict):
        body = body["user"]
    try:
        return UserProfile.model_validate(body)
    except ValidationError as exc:
        raise TicketApiError(fallback) from exc
