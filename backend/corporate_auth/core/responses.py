"""Response envelope models shared by the corporate auth endpoints.

Success bodies are endpoint-specific (see ``corporate_auth.schemas``).
Every failure uses the same flat envelope:

    {"error": "Human readable message"}

Field validation failures add a ``details`` list naming each bad field.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error envelope.

    Attributes:
        error: Human-readable message, safe to show to the user.
        details: Optional per-field details for validation errors.
    """

    error: str
    details: list[dict] | None = None

    def to_content(self) -> dict:
        """Serialize for JSONResponse, omitting ``details`` when empty."""
        return self.model_dump(exclude_none=True)
