"""
Partial-update value object.

A ``Patch`` only ever holds the fields a caller actually supplied. Omitted
fields, explicit nulls and blank strings are all "absent" and can never
overwrite a stored value.
"""
from typing import Any, Dict, Iterable, Mapping


def is_present(value):
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


class Patch:

    def __init__(self, changes: Mapping[str, Any] = None):
        self._changes: Dict[str, Any] = {
            name: value for name, value in (changes or {}).items() if is_present(value)
        }

    @classmethod
    def from_data(cls, data: Mapping[str, Any], fields: Iterable[str]) -> 'Patch':
        """Build a patch from request data, keeping only ``fields``."""
        return cls({name: data[name] for name in fields if name in data})

    @property
    def changes(self) -> Dict[str, Any]:
        return dict(self._changes)

    @property
    def fields(self):
        return list(self._changes)

    def get(self, name, default=None):
        return self._changes.get(name, default)

    def apply_to(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Return a new mapping: ``values`` overlaid with the present fields."""
        merged = dict(values)
        merged.update(self._changes)
        return merged

    def __contains__(self, name):
        return name in self._changes

    def __bool__(self):
        return bool(self._changes)

    def __eq__(self, other):
        return isinstance(other, Patch) and self._changes == other._changes

    def __repr__(self):
        return f"Patch({self._changes!r})"
