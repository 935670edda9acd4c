from __future__ import annotations

from typing import Optional

from ..children.repository import ChildRepository
from .codec import PayloadKind, QRPayloadReader


class QRResolver:
    """Turn any scanned badge string into a child id."""

    def __init__(self, reader: QRPayloadReader, children: ChildRepository):
        self._reader = reader
        self._children = children

    def resolve(self, payload: str) -> Optional[str]:
        scanned = self._reader.read(payload)
        if scanned.kind == PayloadKind.CODE and scanned.code:
            child = self._children.get_by_code(scanned.code)
            return child.child_id if child else None
        return scanned.child_id
