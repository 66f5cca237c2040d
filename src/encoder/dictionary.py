from __future__ import annotations

from typing import Iterable

from contracts.document import CodeHash, hash_payload
from contracts.errors import EncodingFailure


class ContentDictionary:
    """
    Content-addressed payload store owned by a single encode call.

    Memory is proportional to distinct payloads: inserting an already-known
    payload returns the existing key and stores nothing new. Entries keep
    first-insertion order so that serialized output is deterministic.
    """

    def __init__(self) -> None:
        self._entries: dict[CodeHash, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, code_id: object) -> bool:
        return code_id in self._entries

    def insert(self, payload: str) -> CodeHash:
        code_id = hash_payload(payload)
        existing = self._entries.get(code_id)
        if existing is None:
            self._entries[code_id] = payload
        elif existing != payload:
            raise EncodingFailure("Content hash collision between distinct payloads", detail={"code_id": code_id})
        return code_id

    def lookup(self, code_id: CodeHash) -> str:
        try:
            return self._entries[code_id]
        except KeyError:
            raise EncodingFailure("Dictionary lookup miss", detail={"code_id": code_id}) from None

    def prune(self, referenced: Iterable[CodeHash]) -> int:
        """Drop entries no final cell references. Call only once cells are final."""
        keep = set(referenced)
        missing = keep.difference(self._entries)
        if missing:
            raise EncodingFailure(
                "Referenced code_id missing from dictionary", detail={"code_ids": sorted(missing)}
            )
        before = len(self._entries)
        self._entries = {k: v for k, v in self._entries.items() if k in keep}
        return before - len(self._entries)

    def snapshot(self) -> dict[CodeHash, str]:
        return dict(self._entries)
