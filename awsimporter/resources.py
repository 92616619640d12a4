"""
Desired and observed composed resources of a single reconciliation pass.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import FieldNotFound, IdentityConflict, UnknownResource
from .fieldpath import Document

logger = logging.getLogger(__name__)

EXTERNAL_NAME_ANNOTATION = "crossplane.io/external-name"
EXTERNAL_NAME_ANNOTATION_PATH = f'metadata.annotations["{EXTERNAL_NAME_ANNOTATION}"]'


def group_kind(api_version: str, kind: str) -> str:
    """
    Lower-cased group-kind of an object, e.g. 'securitygroup.ec2.aws.upbound.io'.

    Objects in the core group ('v1') yield just the kind.
    """
    group = api_version.rsplit("/", 1)[0] if "/" in api_version else ""
    gk = f"{kind}.{group}" if group else kind
    return gk.lower()


@dataclass
class Resource:
    """A composed resource, either desired (mutable document) or observed (snapshot)."""
    composition_name: str               # Name in the composition, not metadata.name
    platform_name: str                  # metadata.name
    group_kind: str                     # Lower-cased Kind.group
    external_name: str = ""             # Empty when unresolved
    document: Optional[Document] = None  # Only set for desired resources

    @classmethod
    def from_desired(cls, composition_name: str, document: Document) -> "Resource":
        return cls(
            composition_name=composition_name,
            platform_name=_optional(document, "metadata.name"),
            group_kind=group_kind(_optional(document, "apiVersion"), _optional(document, "kind")),
            external_name=_optional(document, EXTERNAL_NAME_ANNOTATION_PATH),
            document=document,
        )

    @classmethod
    def from_observed(cls, composition_name: str, document: Document) -> "Resource":
        # A present but mistyped annotation propagates as FieldPathError.
        return cls(
            composition_name=composition_name,
            platform_name=_optional(document, "metadata.name"),
            group_kind=group_kind(_optional(document, "apiVersion"), _optional(document, "kind")),
            external_name=_optional(document, EXTERNAL_NAME_ANNOTATION_PATH),
        )

    @property
    def is_desired(self) -> bool:
        return self.document is not None


class ResourceSet:
    """Aggregates the desired and observed composed resources of one pass, keyed by composition name."""

    def __init__(self, desired: Dict[str, Resource], observed: Dict[str, Resource]):
        self._desired = desired
        self._observed = observed

    @classmethod
    def from_state(cls, desired: Dict[str, Dict[str, Any]], observed: Dict[str, Dict[str, Any]]) -> "ResourceSet":
        """
        Build a resource set from raw desired and observed resource objects.

        Desired objects are deep-copied, so the caller's documents are never
        mutated by the pass.

        Raises:
            FieldPathError: If an observed resource has a malformed external-name annotation
        """
        observed_resources = {
            name: Resource.from_observed(name, Document(obj))
            for name, obj in observed.items()
        }
        desired_resources = {}
        for name, obj in desired.items():
            res = Resource.from_desired(name, Document(obj).copy())
            obs = observed_resources.get(name)
            if not res.platform_name and obs is not None:
                res.platform_name = obs.platform_name
            desired_resources[name] = res
        return cls(desired_resources, observed_resources)

    def desired(self, composition_name: str) -> Resource:
        try:
            return self._desired[composition_name]
        except KeyError:
            raise UnknownResource(composition_name) from None

    def len_desired(self) -> int:
        return len(self._desired)

    def len_observed(self) -> int:
        return len(self._observed)

    def composition_names(self) -> List[str]:
        """Desired composition names, sorted."""
        return sorted(self._desired)

    def known_identity(self, composition_name: str) -> str:
        """Identity already on the desired document, else the observed one, else ''."""
        res = self.desired(composition_name)
        if res.external_name:
            return res.external_name
        obs = self._observed.get(composition_name)
        return obs.external_name if obs is not None else ""

    def all_identities_known(self) -> bool:
        """True if there are observed resources and every one of them has an external name."""
        if not self._observed:
            return False
        return all(res.external_name for res in self._observed.values())

    def any_identity_resolved(self) -> bool:
        return any(res.external_name for res in self._desired.values())

    def set_identity(self, composition_name: str, identity: str) -> None:
        """
        Write the external-name annotation on a desired resource.

        Raises:
            UnknownResource: If there is no desired resource with that name
            IdentityConflict: If the resource already carries a different identity
        """
        res = self.desired(composition_name)
        if res.external_name and res.external_name != identity:
            raise IdentityConflict(composition_name, res.external_name, identity)
        res.document.set_string(EXTERNAL_NAME_ANNOTATION_PATH, identity)
        res.external_name = identity
        logger.debug(f"Set external name of {composition_name} to {identity}")

    def reassert_observed_identities(self) -> List[str]:
        """
        Copy every observed external name onto its desired document.

        The observed name is authoritative and replaces a different name
        already on the desired document.

        Returns:
            Composition names whose identity was (re)written
        """
        written = []
        for name in sorted(self._observed):
            obs = self._observed[name]
            res = self._desired.get(name)
            if not obs.external_name or res is None:
                continue
            if res.external_name and res.external_name != obs.external_name:
                logger.warning(
                    f"Desired external name of {name} ({res.external_name}) differs from observed "
                    f"({obs.external_name}), using observed"
                )
            res.document.set_string(EXTERNAL_NAME_ANNOTATION_PATH, obs.external_name)
            res.external_name = obs.external_name
            written.append(name)
        return written

    def for_each_unresolved_desired(self, fn: Callable[[Resource], None]) -> None:
        """
        Call fn for each desired resource without a known identity.

        Iteration follows sorted composition names; callers must not depend on
        the order for correctness.
        """
        for name in self.composition_names():
            if not self.known_identity(name):
                fn(self._desired[name])

    def desired_external_names(self) -> Dict[str, str]:
        return {name: res.external_name for name, res in self._desired.items()}

    def observed_external_names(self) -> Dict[str, str]:
        return {name: res.external_name for name, res in self._observed.items()}

    def desired_documents(self) -> Dict[str, Dict[str, Any]]:
        """Up-to-date desired resource objects, keyed by composition name."""
        return {name: res.document.data for name, res in self._desired.items()}


def _optional(document: Document, path: str) -> str:
    try:
        return document.get_string(path)
    except FieldNotFound:
        return ""
