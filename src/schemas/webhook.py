"""Webhook and backup-log schemas."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe for every verified delivery."""

    received: bool = True
    event_type: str | None = None
    email_extracted: bool = False


class EmailLogEntry(BaseModel):
    """One line of the backup email log."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str
    event_type: str
    timestamp: str
    is_pro: bool = True


class EmailLogResponse(BaseModel):
    """Contents of the backup email log."""

    success: bool = True
    message: str
    emails: list[EmailLogEntry] = Field(default_factory=list)
    count: int = 0


class DirectInsertRequest(BaseModel):
    """Body of the secondary insertion endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str | None = None
    is_pro: bool = True
