from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every payment-flow error response."""

    code: str
    message: str
    details: list[dict] = Field(default_factory=list)
    # whether repeating the same request can succeed
    retryable: bool = False
