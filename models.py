from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Build(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    type: str
    tier: Optional[int] = None
    created_at: datetime


class BuildItem(BaseModel):
    id: int
    build_id: int
    slot: str
    item_name: str
    item_description: Optional[str] = None
    item_image: Optional[str] = None
    is_alternative: bool = False
