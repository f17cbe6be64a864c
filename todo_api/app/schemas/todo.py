"""
Pydantic schemas for TODO entries and the ``/todos`` request/response
bodies.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class TODO(BaseModel):
    """A TODO record as stored, with store-assigned identity and timestamps."""

    id: int
    subject: str
    description: str
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }


class CreateTODORequest(BaseModel):
    subject: str = ""
    description: str = ""


class CreateTODOResponse(BaseModel):
    todo: TODO


class ReadTODOResponse(BaseModel):
    todos: List[TODO]


class UpdateTODORequest(BaseModel):
    id: int = 0
    subject: str = ""
    description: str = ""


class UpdateTODOResponse(BaseModel):
    todo: TODO


class DeleteTODORequest(BaseModel):
    ids: List[int] = Field(default_factory=list)


class DeleteTODOResponse(BaseModel):
    pass
