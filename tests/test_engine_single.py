"""
Tests for the single-resource mode, selected by resourceName in the input.
"""

from unittest.mock import MagicMock

import pytest

from awsimporter.config import Settings
from awsimporter.engine import Outcome, ReconciliationEngine
from awsimporter.gateway import TagIndexGateway
from awsimporter.response import Severity
from conftest import EXTERNAL_NAME_TAG, annotation, make_request, mapping, security_group

RESOURCE_NAME = "securityGroup"


def make_engine(*mappings):
    """Engine whose tag index answers every query with the given mappings, in one page."""
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [{"ResourceTagMappingList": list(mappings)}]
    return ReconciliationEngine(TagIndexGateway(client), Settings()), client


def single_request(**input_fields):
    fields = {"resourceName": RESOURCE_NAME}
    fields.update(input_fields)
    return make_request(desired={RESOURCE_NAME: security_group("test")}, **fields)


class TestSingleResource:
    """Test the legacy single-resource pass."""

    def test_match_sets_external_name(self):
        engine, _ = make_engine(mapping("resource1", {EXTERNAL_NAME_TAG: "sg-0ea154g1e2fd170bc"}))

        result = engine.run_function(single_request())
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.CONVERGED
        assert len(rsp["results"]) == 1
        assert rsp["results"][0]["severity"] == "SEVERITY_NORMAL"
        assert rsp["meta"]["ttl"] == "60s"
        assert annotation(rsp, RESOURCE_NAME) == "sg-0ea154g1e2fd170bc"

    def test_nil_input(self):
        engine, client = make_engine()

        result = engine.run_function({})
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.FAILED
        assert len(rsp["results"]) == 1
        assert rsp["results"][0]["severity"] == "SEVERITY_FATAL"
        assert "desired" not in rsp
        client.get_paginator.assert_not_called()

    @pytest.mark.parametrize("resource_name, tag_filter", [
        ("", {"key": "foo", "strategy": "value", "value": "bar"}),
        ("securityGroup", {"key": "", "strategy": "value", "value": "bar"}),
        ("securityGroup", {"key": "foo", "strategy": "value", "value": ""}),
        ("securityGroup", {"key": "foo", "strategy": "valuePath", "valuePath": ""}),
        ("securityGroup", {"key": "foo", "strategy": "", "valuePath": "bar"}),
        ("securityGroup", {"key": "foo", "strategy": "invalid", "valuePath": "bar"}),
    ])
    def test_invalid_input(self, resource_name, tag_filter):
        engine, client = make_engine()
        req = make_request(
            desired={RESOURCE_NAME: security_group("test")},
            tag_filters=[tag_filter],
            resourceName=resource_name,
        )

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.FAILED
        assert len(rsp["results"]) == 1
        assert rsp["results"][0]["severity"] == "SEVERITY_FATAL"
        assert rsp["results"][0]["message"].startswith("invalid function input")
        assert "desired" not in rsp
        client.get_paginator.assert_not_called()

    def test_external_name_already_observed(self):
        engine, client = make_engine()
        req = single_request()
        req["observed"]["resources"] = {RESOURCE_NAME: {"resource": {
            "apiVersion": "ec2.aws.upbound.io/v1beta1",
            "kind": "SecurityGroup",
            "metadata": {"annotations": {
                "crossplane.io/composition-resource-name": RESOURCE_NAME,
                EXTERNAL_NAME_TAG: "sg-0ea154g1e2fd170bc",
            }},
        }}}

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.CONVERGED
        assert len(rsp["results"]) == 1
        assert rsp["results"][0]["severity"] == "SEVERITY_NORMAL"
        assert "already set" in rsp["results"][0]["message"]
        assert rsp["desired"] == req["desired"]
        client.get_paginator.assert_not_called()

    def test_unresolvable_tag_filter(self):
        engine, client = make_engine()
        req = single_request(tagFilters=[
            {"key": "key", "strategy": "valuePath", "valuePath": "some.field.that.doesnt.exist"},
        ])

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.FAILED
        assert rsp["results"][0]["severity"] == "SEVERITY_FATAL"
        assert rsp["desired"] == req["desired"]
        client.get_paginator.assert_not_called()

    def test_multiple_matches(self):
        engine, _ = make_engine(mapping("resource1", {}), mapping("resource2", {}))
        req = single_request()

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.FAILED
        assert len(rsp["results"]) == 1
        assert rsp["results"][0]["severity"] == "SEVERITY_FATAL"
        assert rsp["desired"] == req["desired"]

    def test_no_matches(self):
        engine, _ = make_engine()
        req = single_request()

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.PARTIALLY_CONVERGED
        assert result.response.severity is Severity.NORMAL
        assert len(rsp["results"]) == 1
        assert rsp["desired"] == req["desired"]

    def test_match_without_external_name_tag(self):
        engine, _ = make_engine(mapping("resource1", {"key": "value"}))
        req = single_request()

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.FAILED
        assert rsp["results"][0]["severity"] == "SEVERITY_FATAL"
        assert rsp["desired"] == req["desired"]

    def test_desired_resource_missing(self):
        engine, client = make_engine()
        req = make_request(desired={"other": security_group("other")}, resourceName=RESOURCE_NAME)

        result = engine.run_function(req)
        rsp = result.response.to_dict()

        assert result.outcome is Outcome.FAILED
        assert rsp["results"][0]["message"] == f"composed resource {RESOURCE_NAME!r} not found in desired resources"
        client.get_paginator.assert_not_called()

    def test_query_uses_implicit_predicates(self):
        engine, client = make_engine()

        engine.run_function(single_request(tagFilters=[{"key": "env", "strategy": "value", "value": "prod"}]))

        client.get_paginator.assert_called_once_with("get_resources")
        client.get_paginator.return_value.paginate.assert_called_once_with(TagFilters=[
            {"Key": "env", "Values": ["prod"]},
            {"Key": "crossplane-name", "Values": ["test"]},
            {"Key": "crossplane-kind", "Values": ["securitygroup.ec2.aws.upbound.io"]},
        ])
