"""
Common Schemas
Shared response pieces
"""

from pydantic import BaseModel


class Pagination(BaseModel):
    """Page metadata for list responses"""
    current: int
    pages: int
    total: int


class MessageResponse(BaseModel):
    message: str
