"""Zone and table schemas"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class ZoneCreate(BaseModel):
    """Create zone request"""
    name: str = Field(min_length=1, max_length=255)
    name_es: Optional[str] = None
    name_en: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)


class ZoneResponse(BaseModel):
    id: int
    name: str
    name_es: Optional[str]
    name_en: Optional[str]
    description: Optional[str]
    capacity: Optional[int]

    class Config:
        from_attributes = True


class TableCreate(BaseModel):
    """Create table request"""
    zone_id: int
    table_number: str = Field(min_length=1, max_length=20)
    min_pax: int = Field(default=1, ge=1)
    max_pax: int = Field(ge=1)

    @model_validator(mode="after")
    def check_pax_range(self):
        if self.min_pax > self.max_pax:
            raise ValueError("min_pax must not exceed max_pax")
        return self


class TableResponse(BaseModel):
    id: int
    zone_id: int
    table_number: str
    min_pax: int
    max_pax: int

    class Config:
        from_attributes = True
