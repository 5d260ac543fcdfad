"""Shared API schema base classes.

JSON on the wire is camelCase; Python attributes stay snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for request/response models (camelCase aliases)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OkResponse(ApiModel):
    """Acknowledgement for writes with nothing else to return."""

    ok: bool = Field(default=True)


class ErrorResponse(ApiModel):
    """Body of every error response."""

    error: str = Field(..., description="Human readable message")
    code: str = Field(..., description="Machine readable error code")
    request_id: str | None = Field(default=None, description="X-Request-ID")
