from pydantic import ConfigDict, Field, field_validator

from eventcast.schemas import AppBaseModel


class PublishRequest(AppBaseModel):
    """POST /channels/publish request body.

    An empty channel broadcasts to every channel. data may be a string
    (split on line breaks) or a list of lines.
    """

    # Payload whitespace is significant.
    model_config = ConfigDict(str_strip_whitespace=False)

    channel: str = Field("", max_length=1024)
    id: str = Field("", max_length=256)
    event: str = Field("", max_length=256)
    data: str | list[str]

    @field_validator("id", "event")
    @classmethod
    def reject_line_breaks(cls, value: str) -> str:
        if "\n" in value or "\r" in value:
            raise ValueError("must not contain line breaks")
        return value


class PublishResponse(AppBaseModel):
    """POST /channels/publish response."""

    channel: str
    delivered: int


class CloseChannelRequest(AppBaseModel):
    """POST /channels/close request body."""

    channel: str = Field(..., min_length=1, max_length=1024)


class CloseChannelResponse(AppBaseModel):
    channel: str
    closed: bool


class ChannelResponse(AppBaseModel):
    """GET /channels/info response."""

    name: str
    clients: int


class ChannelListResponse(AppBaseModel):
    """GET /channels response."""

    items: list[ChannelResponse]
    total: int
    clients: int
