from __future__ import annotations

"""Rate provider abstraction.

Each fiat provider knows its fixed endpoint and how to decode that endpoint's
JSON into ``{code: units per 1 USD}``. The fiat chain only depends on this
interface, so tests can substitute providers freely.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional


class RateProvider(ABC):
    name: str
    url: str
    params: Optional[Mapping[str, str]] = None

    @abstractmethod
    def decode(self, payload: Mapping[str, Any]) -> Dict[str, float]:
        """Return units of each code per 1 USD; raise MalformedResponse on schema mismatch."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
