"""
Accessors for RunFunctionRequest documents (JSON form).
"""

from typing import Any, Dict, Optional

from .errors import MalformedRequest
from .fieldpath import Document


def get_tag(req: Dict[str, Any]) -> str:
    meta = req.get("meta") or {}
    return meta.get("tag", "") if isinstance(meta, dict) else ""


def get_input(req: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return req.get("input")


def get_observed_composite(req: Dict[str, Any]) -> Document:
    """Observed composite resource; an empty document when the request has none."""
    composite = _section(req, "observed").get("composite") or {}
    if not isinstance(composite, dict):
        raise MalformedRequest("cannot get observed composite resource: not an object")
    resource = composite.get("resource") or {}
    if not isinstance(resource, dict):
        raise MalformedRequest("cannot get observed composite resource: resource is not an object")
    return Document(resource)


def get_observed_composed(req: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return _composed(req, "observed")


def get_desired_composed(req: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return _composed(req, "desired")


def _section(req: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = req.get(name) or {}
    if not isinstance(section, dict):
        raise MalformedRequest(f"cannot get {name} state: not an object")
    return section


def _composed(req: Dict[str, Any], state: str) -> Dict[str, Dict[str, Any]]:
    resources = _section(req, state).get("resources") or {}
    if not isinstance(resources, dict):
        raise MalformedRequest(f"cannot get {state} composed resources: not an object")

    composed = {}
    for name, entry in resources.items():
        resource = entry.get("resource") if isinstance(entry, dict) else None
        if not isinstance(resource, dict):
            raise MalformedRequest(f"cannot get {state} composed resource {name!r}: resource is not an object")
        composed[name] = resource
    return composed
