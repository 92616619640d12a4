"""
Queries against the AWS Resource Groups Tagging API.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import IdentityTagMissing, IndexUnavailable
from .filters import TagPredicate
from .input import DEFAULT_EXTERNAL_NAME_TAG
from .tags import tags_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotFound:
    """No external resource matched."""


@dataclass(frozen=True)
class Found:
    """Exactly one external resource matched and carries an identity."""
    identity: str
    resource_arn: str


@dataclass(frozen=True)
class Ambiguous:
    """More than one external resource matched."""
    candidates: List[str] = field(default_factory=list)  # ARNs of every match


MatchResult = Union[NotFound, Found, Ambiguous]


def new_tagging_client(settings: Settings):
    """Create a Resource Groups Tagging API client from settings and the default credential chain."""
    session = boto3.Session(region_name=settings.region)
    return session.client(
        "resourcegroupstaggingapi",
        config=Config(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            retries={"max_attempts": settings.max_attempts, "mode": "standard"},
        ),
    )


class TagIndexGateway:
    """Finds the single external resource matching a set of tag predicates."""

    def __init__(self, client, identity_tag: str = DEFAULT_EXTERNAL_NAME_TAG, deadline: Optional[float] = None):
        """
        Args:
            client: A boto3 resourcegroupstaggingapi client
            identity_tag: Tag whose value is the resource identity
            deadline: time.monotonic() value after which queries abort
        """
        self.client = client
        self.identity_tag = identity_tag
        self.deadline = deadline

    def with_identity_tag(self, identity_tag: str) -> "TagIndexGateway":
        return TagIndexGateway(self.client, identity_tag=identity_tag, deadline=self.deadline)

    def with_deadline(self, deadline: Optional[float]) -> "TagIndexGateway":
        return TagIndexGateway(self.client, identity_tag=self.identity_tag, deadline=deadline)

    def list_matches(self, predicates: Sequence[TagPredicate]) -> List[Dict[str, Any]]:
        """
        Return every resource tag mapping that matches all predicates.

        Raises:
            IndexUnavailable: On any transport or pagination failure, or when the deadline passes
        """
        mappings: List[Dict[str, Any]] = []
        self._check_deadline()
        try:
            paginator = self.client.get_paginator("get_resources")
            for page in paginator.paginate(TagFilters=[p.to_tag_filter() for p in predicates]):
                self._check_deadline()
                mappings.extend(page.get("ResourceTagMappingList", []))
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Resource Groups Tagging API query failed: {e}")
            raise IndexUnavailable(f"cannot get resources tag mappings: {e}") from e
        return mappings

    def query(self, predicates: Sequence[TagPredicate]) -> MatchResult:
        """
        Classify the resources matching predicates by cardinality.

        Returns:
            NotFound, Found or Ambiguous

        Raises:
            IdentityTagMissing: If the only match has no identity tag value
            IndexUnavailable: If the index cannot be queried to completion
        """
        mappings = self.list_matches(predicates)

        if len(mappings) > 1:
            arns = [m.get("ResourceARN", "") for m in mappings]
            logger.info(f"Ambiguous tag filters, {len(arns)} resources match: {arns}")
            return Ambiguous(candidates=arns)

        if not mappings:
            logger.debug(f"External resource not found for {[str(p) for p in predicates]}")
            return NotFound()

        mapping = mappings[0]
        arn = mapping.get("ResourceARN", "")
        tags = tags_to_dict(mapping.get("Tags"))
        logger.debug(f"Found resource {arn} with tags {tags}")

        identity = tags.get(self.identity_tag, "")
        if not identity:
            raise IdentityTagMissing(arn, self.identity_tag)
        return Found(identity=identity, resource_arn=arn)

    def _check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise IndexUnavailable("deadline exceeded while paginating resource tag mappings")
