"""Product id -> remote cart record id, for the signed-in session only."""
from typing import Iterable, Iterator


class RemoteIdentityIndex:
    """Maps product ids to the record ids the store assigned to their cart lines.

    An entry means the record is believed to exist remotely. A product in the
    cart without an entry has not been confirmed as persisted.
    """

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}

    def set(self, product_id: str, record_id: str) -> None:
        self._ids[product_id] = record_id

    def get(self, product_id: str) -> str | None:
        return self._ids.get(product_id)

    def delete(self, product_id: str, record_id: str | None = None) -> None:
        """Drop the entry; with ``record_id`` only if it still points there."""
        if record_id is not None and self._ids.get(product_id) != record_id:
            return
        self._ids.pop(product_id, None)

    def clear(self) -> None:
        self._ids.clear()

    def replace(self, pairs: Iterable[tuple[str, str]]) -> None:
        self._ids = dict(pairs)

    def items(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._ids.items()))

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
