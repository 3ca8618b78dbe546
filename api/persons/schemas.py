"""
Person request/response models.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

NAME_MAX_LENGTH = 50

# Both id and age are 32-bit INT columns.
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class PersonIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    age: int = Field(..., ge=0, le=INT32_MAX)


class Person(BaseModel):
    id: int
    name: str
    age: int
