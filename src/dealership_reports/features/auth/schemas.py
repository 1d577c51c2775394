"""Pydantic schemas for the bearer tokens report callers present."""

from pydantic import BaseModel, Field
from typing import Optional


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    sub: Optional[str] = None
    # Tenant the token was issued for; reports are scoped by the user's company
    company_id: Optional[str] = Field(None, alias="company")
