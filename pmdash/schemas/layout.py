# pmdash/schemas/layout.py

from typing import Any, Dict, List, Optional

from pydantic import Field

from pmdash.schemas.base import CamelModel

# Widgets are stored as-is; the calculators never interpret their contents.
Widget = Dict[str, Any]


class VersionedLayout(CamelModel):
    version: int
    widgets: List[Widget] = Field(default_factory=list)
    migrated_at: Optional[int] = None  # epoch milliseconds
