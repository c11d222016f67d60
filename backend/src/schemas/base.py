# backend/src/schemas/base.py
from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema settings"""
    model_config = ConfigDict(from_attributes=True, arbitrary_types_allowed=True)
