"""
Shared fixtures: an in-memory tag index and request builders.
"""

import copy

import pytest

from awsimporter.config import Settings
from awsimporter.engine import ReconciliationEngine
from awsimporter.gateway import TagIndexGateway

SG_KIND_TAG = "securitygroup.ec2.aws.upbound.io"
EXTERNAL_NAME_TAG = "crossplane.io/external-name"


class FakeTaggingClient:
    """Answers GetResources from a fixed list of resource tag mappings.

    Every tag filter must match (conjunction), and results are split into
    pages of page_size mappings.
    """

    def __init__(self, mappings=None, page_size=1, error=None):
        self.mappings = mappings or []
        self.page_size = page_size
        self.error = error
        self.calls = []

    def get_paginator(self, operation_name):
        assert operation_name == "get_resources"
        return self

    def paginate(self, TagFilters):
        self.calls.append(copy.deepcopy(TagFilters))
        if self.error is not None:
            raise self.error
        matches = [m for m in self.mappings if _matches(m, TagFilters)]
        if not matches:
            yield {"ResourceTagMappingList": []}
        for start in range(0, len(matches), self.page_size):
            yield {"ResourceTagMappingList": matches[start:start + self.page_size]}


def _matches(mapping, tag_filters):
    tags = {t["Key"]: t["Value"] for t in mapping.get("Tags", [])}
    return all(tags.get(f["Key"]) in f["Values"] for f in tag_filters)


def mapping(arn, tags):
    return {"ResourceARN": arn, "Tags": [{"Key": k, "Value": v} for k, v in tags.items()]}


def sg_mapping(arn, name, external_name=None, **extra_tags):
    """A security group mapping carrying the tags the provider puts on managed resources."""
    tags = {"crossplane-name": name, "crossplane-kind": SG_KIND_TAG}
    if external_name is not None:
        tags[EXTERNAL_NAME_TAG] = external_name
    tags.update(extra_tags)
    return mapping(arn, tags)


def security_group(name, external_name=None):
    obj = {
        "apiVersion": "ec2.aws.upbound.io/v1beta1",
        "kind": "SecurityGroup",
        "metadata": {"name": name},
        "spec": {
            "deletionPolicy": "Orphan",
            "forProvider": {
                "description": "foo-bar",
                "name": name,
                "region": "us-east-1",
                "tags": {"Name": name},
                "vpcId": "some-vpc-id",
            },
        },
    }
    if external_name is not None:
        obj["metadata"]["annotations"] = {EXTERNAL_NAME_TAG: external_name}
    return obj


def make_request(desired=None, observed=None, tag_filters=None, composite=None, **input_fields):
    """Build a RunFunctionRequest in its JSON form."""
    fn_input = {"apiVersion": "importer.fn.crossplane.io/v1beta1", "kind": "Input"}
    fn_input["tagFilters"] = tag_filters or []
    fn_input.update(input_fields)

    req = {
        "meta": {"tag": "test-tag"},
        "input": fn_input,
        "observed": {"composite": {"resource": composite or {"apiVersion": "example.org/v1", "kind": "XNetwork"}}},
    }
    if observed is not None:
        req["observed"]["resources"] = {name: {"resource": obj} for name, obj in observed.items()}
    if desired is not None:
        req["desired"] = {"resources": {name: {"resource": obj} for name, obj in desired.items()}}
    return req


def annotation(rsp_dict, name):
    """External-name annotation of a desired resource in a response, or None."""
    obj = rsp_dict["desired"]["resources"][name]["resource"]
    return obj.get("metadata", {}).get("annotations", {}).get(EXTERNAL_NAME_TAG)


@pytest.fixture
def fake_client():
    return FakeTaggingClient()


@pytest.fixture
def engine(fake_client):
    return ReconciliationEngine(TagIndexGateway(fake_client), Settings())
