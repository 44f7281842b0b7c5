from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from app.models.base import TicketStatus, UpstreamModel, as_utc
from app.models.user import TicketOwner


class Reply(UpstreamModel):
    """A reply on a ticket. The API sends either bare strings or objects."""

    message: str = ""
    created_at: datetime | None = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @model_validator(mode="before")
    @classmethod
    def from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"message": value}
        if isinstance(value, dict) and "message" not in value:
            for key in ("reply", "text", "content"):
                if isinstance(value.get(key), str):
                    return {**value, "message": value[key]}
        return value


class Ticket(UpstreamModel):
    id: str = Field(alias="_id")
    owner: TicketOwner | None = Field(None, alias="userId")
    product: str = ""
    subject: str = ""
    inquiry: str = ""
    image: str | None = None
    replies: list[Reply] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    @field_validator("owner", mode="before")
    @classmethod
    def drop_unpopulated_owner(cls, value: Any) -> Any:
        # An unpopulated reference arrives as a bare id string
        if isinstance(value, (dict, TicketOwner)):
            return value
        return None

    @field_validator("image", mode="before")
    @classmethod
    def blank_image_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def is_solved(self) -> bool:
        return len(self.replies) > 0

    @property
    def status(self) -> TicketStatus:
        return TicketStatus.solved if self.is_solved else TicketStatus.pending

    @property
    def owner_email(self) -> str | None:
        return self.owner.email if self.owner else None

    @property
    def owner_name(self) -> str | None:
        return self.owner.name if self.owner else None
