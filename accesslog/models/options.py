"""
Pydantic model for access-log middleware options.

Validated once when the middleware is constructed; never consulted
per request beyond the values resolved here.
"""

from typing import Any, Callable

from pydantic import BaseModel, Field, field_validator

# Flush interval used when buffering is enabled with ``buffer=True``
DEFAULT_BUFFER_INTERVAL_MS = 1000


class LoggerOptions(BaseModel):
    """Options accepted by ``AccessLogMiddleware``."""

    format: str | Callable[..., Any] | None = Field(
        default=None,
        description=(
            "Template string (colon or percent dialect), a callback "
            "``(request, response, render) -> str``, or None for the "
            "fixed common-log layout."
        ),
    )
    stream: Any = Field(
        default=None,
        description="Object exposing ``write(str)``. Defaults to stdout.",
    )
    buffer: bool | int = Field(
        default=False,
        description="False, True (1000ms), or a flush interval in milliseconds.",
    )

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @field_validator("buffer")
    @classmethod
    def _non_negative(cls, value: bool | int) -> bool | int:
        if not isinstance(value, bool) and value < 0:
            raise ValueError("buffer interval must be a positive number of milliseconds")
        return value

    @property
    def buffer_interval(self) -> int | None:
        """Flush interval in milliseconds, or None when unbuffered."""
        if self.buffer is True:
            return DEFAULT_BUFFER_INTERVAL_MS
        if not self.buffer:
            return None
        return int(self.buffer)
