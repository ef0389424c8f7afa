"""
Name-keyed mapping with configurable case sensitivity.

Collections are looked up by user-chosen names. Depending on configuration,
'Favorites' and 'favorites' are either two names or the same one.
"""

from typing import Dict, Generic, Iterator, MutableMapping, Tuple, TypeVar

V = TypeVar("V")


class NameKeyedDict(MutableMapping[str, V], Generic[V]):
    """
    Dict keyed by names, compared ordinally or case-insensitively.

    The first spelling stored for a key is kept as its display name; later
    assignments through a differently-cased spelling replace the value only.
    Iteration yields display names in insertion order.
    """

    def __init__(self, case_insensitive: bool = False):
        self.case_insensitive = case_insensitive
        self._items: Dict[str, Tuple[str, V]] = {}

    def _key(self, name: str) -> str:
        return name.casefold() if self.case_insensitive else name

    def __getitem__(self, name: str) -> V:
        return self._items[self._key(name)][1]

    def __setitem__(self, name: str, value: V) -> None:
        key = self._key(name)
        existing = self._items.get(key)
        display_name = existing[0] if existing else name
        self._items[key] = (display_name, value)

    def __delitem__(self, name: str) -> None:
        del self._items[self._key(name)]

    def __iter__(self) -> Iterator[str]:
        return (display_name for display_name, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._items

    def display_name(self, name: str) -> str:
        """The stored spelling for a name.

        Raises:
            KeyError: If the name is not present
        """
        return self._items[self._key(name)][0]

    def __repr__(self) -> str:
        mode = "case-insensitive" if self.case_insensitive else "case-sensitive"
        return f"NameKeyedDict({mode}, {dict(self.items())!r})"
