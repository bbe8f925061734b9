"""Pydantic schemas for the session identity and error responses.

Resource payloads are read as raw JSON objects and validated by the
services so that every rejection is a 400 with a specific message; the
models here describe the shapes that are fixed.
"""

from typing import Optional

from pydantic import BaseModel


class MessageOut(BaseModel):
    """Error body returned for every failed request."""
    message: str


class SessionUser(BaseModel):
    """GitHub identity carried inside the session token."""
    id: str
    login: str
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.login
