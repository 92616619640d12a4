"""
Reconciliation engine: adopts pre-existing AWS resources into a composition
by writing their external names onto the desired composed resources.

One call to run_function is one pass. A pass either converges (some or all
identities known and written), partially converges (nothing found yet, try
again next pass) or fails (nothing written at all).
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from . import request
from .config import Settings
from .errors import AmbiguousMatch, ImporterError, UnknownResource, ValidationError
from .fieldpath import Document
from .filters import resolve_predicates
from .gateway import Ambiguous, Found, TagIndexGateway
from .input import Input
from .resources import Resource, ResourceSet
from .response import Response

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Terminal state of a pass."""
    CONVERGED = "converged"
    PARTIALLY_CONVERGED = "partially_converged"
    FAILED = "failed"


@dataclass
class PassResult:
    outcome: Outcome
    response: Response
    resolved: Dict[str, str] = field(default_factory=dict)  # Identities newly found this pass


class ReconciliationEngine:
    """Resolves external names for desired composed resources from AWS tags."""

    def __init__(self, gateway: TagIndexGateway, settings: Optional[Settings] = None):
        self.gateway = gateway
        self.settings = settings or Settings()

    def run_function(self, req: Dict[str, Any]) -> PassResult:
        """
        Run one reconciliation pass.

        Never raises for pass-level failures: they are reported as a single
        fatal result, with the request's desired state left untouched.
        """
        logger.info(f"Running function, tag={request.get_tag(req)!r}")
        rsp = Response.to(req, self.settings.ttl_seconds)

        try:
            inp = Input.from_dict(request.get_input(req))
        except ValidationError as e:
            logger.info(f"Invalid function input: {e}")
            rsp.desired = None
            rsp.fatal(f"invalid function input: {e}")
            return PassResult(Outcome.FAILED, rsp)

        logger.debug(f"Fetched input: {inp.to_dict()}")
        gateway = self._gateway_for(inp)

        try:
            if inp.single_resource:
                return self._reconcile_single(inp, req, rsp, gateway)
            return self._reconcile_all(inp, req, rsp, gateway)
        except ImporterError as e:
            logger.info(f"Reconciliation pass failed: {e}")
            failed = Response.to(req, self.settings.ttl_seconds)
            failed.fatal(str(e))
            return PassResult(Outcome.FAILED, failed)

    def _gateway_for(self, inp: Input) -> TagIndexGateway:
        deadline = None
        if self.settings.deadline_seconds:
            deadline = time.monotonic() + self.settings.deadline_seconds
        identity_tag = inp.external_name_tag or self.settings.external_name_tag
        return self.gateway.with_identity_tag(identity_tag).with_deadline(deadline)

    def _reconcile_all(self, inp: Input, req: Dict[str, Any], rsp: Response,
                       gateway: TagIndexGateway) -> PassResult:
        resources = ResourceSet.from_state(
            request.get_desired_composed(req),
            request.get_observed_composed(req),
        )

        if resources.len_desired() == 0:
            logger.info("No desired composed resources yet")
            rsp.warning("no desired composed resources to reconcile yet")
            return PassResult(Outcome.PARTIALLY_CONVERGED, rsp)

        if resources.all_identities_known():
            resources.reassert_observed_identities()
            logger.debug(f"All observed external names known: {resources.observed_external_names()}")
            rsp.set_desired_composed(resources.desired_documents())
            rsp.normal(f"external names are already set for all {resources.len_observed()} observed composed resources")
            return PassResult(Outcome.CONVERGED, rsp)

        resources.reassert_observed_identities()
        reference = request.get_observed_composite(req)
        resolved: Dict[str, str] = {}

        def resolve(res: Resource) -> None:
            identity = self._match(inp, gateway, reference, res)
            if identity:
                resources.set_identity(res.composition_name, identity)
                resolved[res.composition_name] = identity

        resources.for_each_unresolved_desired(resolve)

        if not resources.any_identity_resolved():
            logger.info(f"No external resources found yet for {resources.len_desired()} composed resources")
            rsp.normal(f"external resources not found yet for {resources.composition_names()}")
            return PassResult(Outcome.PARTIALLY_CONVERGED, rsp)

        rsp.set_desired_composed(resources.desired_documents())
        for name in sorted(resolved):
            rsp.normal(f"added external name annotation to {name!r} with value {resolved[name]!r}")

        names = resources.desired_external_names()
        pending = sorted(n for n, ext in names.items() if not ext)
        summary = f"{len(names) - len(pending)} of {len(names)} composed resources have external names"
        if pending:
            summary += f", not found yet: {pending}"
        rsp.normal(summary)
        logger.info(f"Added external name annotations: {resolved}")
        return PassResult(Outcome.CONVERGED, rsp, resolved)

    def _reconcile_single(self, inp: Input, req: Dict[str, Any], rsp: Response,
                          gateway: TagIndexGateway) -> PassResult:
        name = inp.resource_name
        observed = request.get_observed_composed(req)
        if name in observed:
            obs = Resource.from_observed(name, Document(observed[name]))
            if obs.external_name:
                logger.debug(f"External name of {name} already set to {obs.external_name}")
                rsp.normal(f"external name annotation for {name!r} is already set to {obs.external_name!r}")
                return PassResult(Outcome.CONVERGED, rsp)

        desired = request.get_desired_composed(req)
        if name not in desired:
            raise UnknownResource(name)

        resources = ResourceSet.from_state(
            {name: desired[name]},
            {name: observed[name]} if name in observed else {},
        )
        res = resources.desired(name)
        if res.external_name:
            rsp.normal(f"external name annotation for {name!r} is already set to {res.external_name!r}")
            return PassResult(Outcome.CONVERGED, rsp)

        identity = self._match(inp, gateway, request.get_observed_composite(req), res)
        if not identity:
            rsp.normal(f"external resource ({name!r}) not found")
            return PassResult(Outcome.PARTIALLY_CONVERGED, rsp)

        resources.set_identity(name, identity)
        rsp.set_desired_composed(resources.desired_documents())
        rsp.normal(f"added external name annotation to {name!r} with value {identity!r}")
        logger.info(f"Added external name annotation to {name}: {identity}")
        return PassResult(Outcome.CONVERGED, rsp, {name: identity})

    def _match(self, inp: Input, gateway: TagIndexGateway, reference: Document, res: Resource) -> Optional[str]:
        """Identity of the single external resource matching res, or None when there is none yet."""
        predicates = resolve_predicates(inp.tag_filters, reference, res)
        result = gateway.query(predicates)
        if isinstance(result, Ambiguous):
            raise AmbiguousMatch(res.composition_name, result.candidates)
        if isinstance(result, Found):
            logger.debug(f"Matched {res.composition_name} to {result.resource_arn}")
            return result.identity
        return None
