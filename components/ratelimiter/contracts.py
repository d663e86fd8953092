from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
import re

class Policy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique policy name")
    limit: PositiveInt = Field(..., description="Requests allowed per window")
    window_seconds: PositiveInt = Field(60, description="Window length in seconds")
    path_pattern: str = Field(r".*", description="Regex to match request path")
    methods: Optional[List[str]] = Field(None, description="List of HTTP methods; None means all")

    @field_validator("methods")
    @classmethod
    def normalize_methods(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [m.upper() for m in v]

    def matches(self, method: str, path: str) -> bool:
        if self.methods and method.upper() not in self.methods:
            return False
        return re.search(self.path_pattern, path) is not None


class ConsumeResult(BaseModel):
    allowed: bool
    remaining: int
    reset_after: float
    policy: str
    key: str
