"""
Pydantic base classes for the API layer.

Incoming bodies are strict: an unknown key is a 422, so a client sending
``owner_id`` on card set creation finds out immediately instead of being
silently ignored. Outgoing bodies are lenient and build straight from ORM
rows or the frozen dataclasses the services return.
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_default=True,
        from_attributes=True,
    )


class StrictResponse(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        from_attributes=True,
    )
