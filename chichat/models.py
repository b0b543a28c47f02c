from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request payload for chat API."""
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, alias="customerName")


class ChatResponse(BaseModel):
    """Response payload returned by the chat API."""
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    customer_name: Optional[str] = Field(default=None, alias="customerName")


class ErrorResponse(BaseModel):
    """Error body for every non-2xx chat response."""
    error: str
    details: Optional[str] = None
