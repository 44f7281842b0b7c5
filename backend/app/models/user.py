from pydantic import Field

from app.models.base import UpstreamModel


class TicketOwner(UpstreamModel):
    """User embedded in a ticket when the API populates ``userId``."""

    id: str | None = Field(None, alias="_id")
    name: str | None = None
    email: str | None = None
    profile_pic: str | None = Field(None, alias="profilePic")


class UserProfile(UpstreamModel):
    id: str | None = Field(None, alias="_id")
    name: str | None = None
    email: str | None = None
    profile_pic: str | None = Field(None, alias="profilePic")
