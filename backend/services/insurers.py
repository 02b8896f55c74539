from typing import Iterable, Optional

from data.insurers import LICENSED_INSURERS


def normalize_insurer_name(name: Optional[str]) -> str:
    """Lowercase and collapse whitespace so 'QBE  Insurance' == 'qbe insurance'"""
    if not name:
        return ""
    return " ".join(name.split()).lower()


class InsurerRegistry:
    """Set-membership lookup of insurers allowed to issue certificates."""

    def __init__(self, names: Iterable[str]):
        self._names = {normalize_insurer_name(n) for n in names if n}

    def is_licensed(self, insurer_name: Optional[str]) -> bool:
        key = normalize_insurer_name(insurer_name)
        return bool(key) and key in self._names

    def __len__(self):
        return len(self._names)


default_registry = InsurerRegistry(LICENSED_INSURERS)
