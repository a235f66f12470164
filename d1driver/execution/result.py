"""Result shape returned by statement execution."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

FIELDS = ("success", "results", "meta", "error")


@dataclass
class D1Result:
    """Outcome of a statement: ``success`` plus the matched rows.

    ``results`` is always a list, empty when nothing matched. Fields can
    also be read by key (``result["success"]``, ``result.get("error")``)
    so code written against dict-returning bindings works unchanged.
    """
    success: bool
    results: List[Dict[str, Any]] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: Exception) -> "D1Result":
        message = getattr(error, "message", None) or str(error)
        return cls(success=False, results=[], error=message)

    def __getitem__(self, key: str) -> Any:
        if key not in FIELDS:
            raise KeyError(key)
        return getattr(self, key)

    def __contains__(self, key: object) -> bool:
        return key in FIELDS

    def get(self, key: str, default: Any = None) -> Any:
        if key not in FIELDS:
            return default
        return getattr(self, key)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "results": self.results,
            "meta": self.meta,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
