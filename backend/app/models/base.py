import enum
from datetime import datetime, timezone

from pydantic import BaseModel


class UpstreamModel(BaseModel):
    """Base for records received from the ticket API.

    The API speaks camelCase; fields keep snake_case names and declare the
    wire name as an alias so either spelling validates.
    """

    model_config = {"populate_by_name": True, "extra": "ignore"}


class TicketStatus(str, enum.Enum):
    pending = "pending"
    solved = "solved"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps from the API as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
