import argparse

import pytest

from devops_cli.aws_api import ProviderFilter
from devops_cli.errors import MissingFieldError, ProviderFilterError, TransportError
from devops_cli.selection import SelectOptions, add_select_arguments, list_instances, resolve_instances


def raw(instance_id, name=None, launch=0, state=16):
    record = {
        "InstanceId": instance_id,
        "State": {"Code": state},
        "Placement": {"AvailabilityZone": "eu-west-1a"},
        "PrivateIpAddress": "10.0.0.1",
        "LaunchTime": launch,
    }
    if name is not None:
        record["Tags"] = [{"Key": "Name", "Value": name}]
    return record


class FakeLister:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    def list_instances(self, filters=()):
        self.calls.append(list(filters))
        if self.error is not None:
            raise self.error
        return self.records


class TestResolveInstances:
    def test_matches_and_orders_newest_first(self):
        lister = FakeLister([raw("i-1", "web-1", launch=100), raw("i-2", "web-2", launch=200)])
        result = resolve_instances(lister, [], ["web"])
        assert [record.instance_id for record in result] == ["i-2", "i-1"]

    def test_sorted_descending_without_query(self):
        lister = FakeLister([raw("i-a", launch=5), raw("i-b", launch=50), raw("i-c", launch=20)])
        result = resolve_instances(lister, [], [])
        assert [record.instance_id for record in result] == ["i-b", "i-c", "i-a"]

    def test_provider_filters_go_to_the_lister(self):
        lister = FakeLister()
        filters = [ProviderFilter.parse("tag:Env=prod")]
        assert resolve_instances(lister, filters, []) == []
        assert lister.calls == [filters]

    def test_untagged_instances_only_match_ids(self):
        lister = FakeLister([raw("i-1"), raw("i-2", "web-1")])
        assert [r.instance_id for r in resolve_instances(lister, [], ["1"])] == ["i-2"]
        assert [r.instance_id for r in resolve_instances(lister, [], ["i-1"])] == ["i-1"]

    def test_invalid_tokens_are_ignored(self):
        lister = FakeLister([raw("i-1", "web-1")])
        assert len(resolve_instances(lister, [], ["", "web"])) == 1

    def test_malformed_record_aborts_resolution(self):
        broken = raw("i-2", "web-2")
        del broken["PrivateIpAddress"]
        lister = FakeLister([raw("i-1", "web-1"), broken])
        with pytest.raises(MissingFieldError):
            resolve_instances(lister, [], ["web"])

    def test_lister_errors_propagate(self):
        lister = FakeLister(error=TransportError("boom"))
        with pytest.raises(TransportError):
            resolve_instances(lister, [], [])


def parse(argv):
    parser = argparse.ArgumentParser()
    add_select_arguments(parser)
    return SelectOptions.from_args(parser.parse_args(argv))


class TestSelectOptions:
    def test_defaults(self):
        options = parse([])
        assert options.has_no_filters()
        assert options.provider_filters() == []

    def test_query_and_filters(self):
        options = parse(["-f", "tag:Env=prod", "--filter", "instance-state-name=running", "web", "3"])
        assert options.query == ("web", "3")
        assert options.filters_with_extra_flags() == ["tag:Env=prod", "instance-state-name=running"]
        assert not options.has_no_filters()

    def test_docproc_shortcut(self):
        assert parse(["--docproc"]).filters_with_extra_flags() == [
            "tag:AV_Scan=false",
            "tag:StepfileProcessor=false",
        ]

    def test_shortcut_flags(self):
        assert parse(["--avscan", "--no-stepfile"]).filters_with_extra_flags() == [
            "tag:AV_Scan=true",
            "tag:StepfileProcessor=false",
        ]
        assert parse(["--no-avscan", "--stepfile"]).filters_with_extra_flags() == [
            "tag:AV_Scan=false",
            "tag:StepfileProcessor=true",
        ]

    def test_shortcut_alone_is_a_filter(self):
        assert not parse(["--stepfile"]).has_no_filters()

    def test_conflicting_flags_are_rejected(self):
        with pytest.raises(SystemExit):
            parse(["--avscan", "--no-avscan"])

    def test_bad_filter_is_an_error(self):
        with pytest.raises(ProviderFilterError):
            parse(["-f", "nonsense"]).provider_filters()

    def test_list_instances_uses_shortcut_filters(self):
        lister = FakeLister([raw("i-1", "docproc-1")])
        result = list_instances(parse(["--avscan", "docproc"]), lister)
        assert [r.instance_id for r in result] == ["i-1"]
        assert lister.calls == [[ProviderFilter("tag:AV_Scan", ("true",))]]
