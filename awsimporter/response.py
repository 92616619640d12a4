"""
RunFunctionResponse construction.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(Enum):
    """Result severities understood by the orchestrator."""
    NORMAL = "SEVERITY_NORMAL"
    WARNING = "SEVERITY_WARNING"
    FATAL = "SEVERITY_FATAL"


_RANK = {Severity.NORMAL: 0, Severity.WARNING: 1, Severity.FATAL: 2}


@dataclass
class Result:
    severity: Severity
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"severity": self.severity.value, "message": self.message}


class Response:
    """A response under construction, seeded from the request it answers."""

    def __init__(self, tag: str = "", ttl_seconds: int = 60, desired: Optional[Dict[str, Any]] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.tag = tag
        self.ttl_seconds = ttl_seconds
        self.desired = desired
        self.context = context
        self.results: List[Result] = []

    @classmethod
    def to(cls, req: Dict[str, Any], ttl_seconds: int = 60) -> "Response":
        """Start a response that carries the request's desired state and context unchanged."""
        meta = req.get("meta") or {}
        return cls(
            tag=meta.get("tag", "") if isinstance(meta, dict) else "",
            ttl_seconds=ttl_seconds,
            desired=copy.deepcopy(req.get("desired")),
            context=copy.deepcopy(req.get("context")),
        )

    def normal(self, message: str) -> None:
        self.results.append(Result(Severity.NORMAL, message))

    def warning(self, message: str) -> None:
        self.results.append(Result(Severity.WARNING, message))

    def fatal(self, message: str) -> None:
        self.results.append(Result(Severity.FATAL, message))

    @property
    def severity(self) -> Severity:
        """Most severe result, NORMAL when there are none."""
        if not self.results:
            return Severity.NORMAL
        return max((r.severity for r in self.results), key=_RANK.__getitem__)

    def set_desired_composed(self, resources: Dict[str, Dict[str, Any]]) -> None:
        """Replace the given desired composed resources, keeping every other desired entry."""
        if self.desired is None:
            self.desired = {}
        entries = self.desired.setdefault("resources", {})
        for name, obj in resources.items():
            entries.setdefault(name, {})["resource"] = copy.deepcopy(obj)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "meta": {"tag": self.tag, "ttl": f"{self.ttl_seconds}s"},
            "results": [r.to_dict() for r in self.results],
        }
        if self.desired is not None:
            result["desired"] = self.desired
        if self.context is not None:
            result["context"] = self.context
        return result
