from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from .aws_api import ProviderFilter, to_record
from .filters import InstanceFilter
from .models import InstanceRecord

DESCRIBE_INSTANCES_DOCS = "https://docs.aws.amazon.com/AWSEC2/latest/APIReference/API_DescribeInstances.html"


class InstanceLister(Protocol):
    def list_instances(self, filters: Sequence[ProviderFilter] = ()) -> list[dict[str, Any]]: ...


@dataclass(slots=True, frozen=True)
class SelectOptions:
    filters: tuple[str, ...] = ()
    docproc: bool = False
    avscan: bool = False
    no_avscan: bool = False
    stepfile: bool = False
    no_stepfile: bool = False
    query: tuple[str, ...] = ()

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> SelectOptions:
        return cls(
            filters=tuple(args.filter or ()),
            docproc=args.docproc,
            avscan=args.avscan,
            no_avscan=args.no_avscan,
            stepfile=args.stepfile,
            no_stepfile=args.no_stepfile,
            query=tuple(args.query),
        )

    def filters_with_extra_flags(self) -> list[str]:
        filters = list(self.filters)
        if self.docproc:
            filters.append("tag:AV_Scan=false")
            filters.append("tag:StepfileProcessor=false")
        if self.avscan:
            filters.append("tag:AV_Scan=true")
        if self.no_avscan:
            filters.append("tag:AV_Scan=false")
        if self.stepfile:
            filters.append("tag:StepfileProcessor=true")
        if self.no_stepfile:
            filters.append("tag:StepfileProcessor=false")
        return filters

    def provider_filters(self) -> list[ProviderFilter]:
        return [ProviderFilter.parse(f) for f in self.filters_with_extra_flags()]

    def has_no_filters(self) -> bool:
        return not self.query and not self.filters_with_extra_flags()


def add_select_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("instance selection")
    group.add_argument(
        "-f",
        "--filter",
        action="append",
        metavar="KEY=VALUE[,VALUE2...]",
        help=f"Raw filter passed to the AWS API, see the 'Filter.N' section of {DESCRIBE_INSTANCES_DOCS}",
    )
    group.add_argument(
        "--docproc",
        action="store_true",
        help="Only 'regular' doc-proc servers (tag:AV_Scan=false, tag:StepfileProcessor=false)",
    )
    avscan = group.add_mutually_exclusive_group()
    avscan.add_argument("--avscan", action="store_true", help="Only av-scan doc-proc servers")
    avscan.add_argument("--no-avscan", action="store_true", help="Exclude av-scan doc-proc servers")
    stepfile = group.add_mutually_exclusive_group()
    stepfile.add_argument("--stepfile", action="store_true", help="Only stepfile-processor doc-proc servers")
    stepfile.add_argument(
        "--no-stepfile",
        action="store_true",
        help="Exclude stepfile-processor doc-proc servers",
    )
    group.add_argument(
        "query",
        nargs="*",
        help=(
            "Instance query: 'i-...' matches the start of the instance id, numbers match the end "
            "of the Name tag (cluster ids), anything else is matched (contains) on the Name tag"
        ),
    )


def resolve_instances(
    lister: InstanceLister,
    provider_filters: Sequence[ProviderFilter],
    query: Sequence[str],
) -> list[InstanceRecord]:
    """List instances and keep those matching every query token, newest first.

    A raw record that fails validation aborts the whole resolution.
    """
    instances = [to_record(raw) for raw in lister.list_instances(provider_filters)]
    user_filter = InstanceFilter.from_tokens(query)
    matching = [instance for instance in instances if user_filter.matches(instance)]
    matching.sort(key=lambda instance: instance.launch_time, reverse=True)
    logger.debug("{matched} of {total} instances match the query", matched=len(matching), total=len(instances))
    return matching


def list_instances(options: SelectOptions, lister: InstanceLister) -> list[InstanceRecord]:
    return resolve_instances(lister, options.provider_filters(), options.query)
