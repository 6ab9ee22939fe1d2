from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class UsageOut(BaseModel):
    metric: str
    allowed: bool
    limit: Optional[int] = None
    used: Optional[int] = None
    degraded: bool = False
