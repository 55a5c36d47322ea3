"""Pydantic models for Expense data"""
from pydantic import BaseModel
from datetime import datetime
from typing import Any, Union


class Expense(BaseModel):
    """
    Represents a single stored expense record.
    """
    id: str
    title: str
    amount: Union[int, float]
    category: Any = None  # left out of responses when never set
    date: datetime

    class Config:
        populate_by_name = True
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class CreatedResponse(MessageResponse):
    id: str
