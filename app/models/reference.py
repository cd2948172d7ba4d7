"""Reference data models (interview types, experience and difficulty levels)."""
from pydantic import BaseModel
from typing import Dict, Optional


class ReferenceEntry(BaseModel):
    """One selectable option backed by a lookup table."""

    id: int
    value: str
    label: str
    description: Optional[str] = None
    icon: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Dict) -> "ReferenceEntry":
        # interview_types rows use type/title, level rows use value/label
        return cls(
            id=doc["_id"],
            value=doc.get("value") or doc.get("type"),
            label=doc.get("label") or doc.get("title"),
            description=doc.get("description"),
            icon=doc.get("icon"),
        )
