from pydantic import BaseModel, ConfigDict


class AppBaseModel(BaseModel):
    """Shared config for request and response bodies."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        str_max_length=65536,
        extra="forbid",
        validate_default=True,
    )
