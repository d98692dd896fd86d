#!/usr/bin/env python3
"""
KUBEBUNDLE PACKAGE STORE
------------------------
The boundary with whatever persists package revisions. The engine only
depends on the PackageStore protocol; InMemoryPackageStore is a faithful
local stand-in used by the CLI and the test-suite.

Every call is one asynchronous round trip. Replacing resources is
last-write-wins: there is no merge and no concurrency check.

Author: KubeBundle Team
Date: 2026-10-17
"""

import logging
from dataclasses import replace
from typing import Dict, List, Protocol

from kubebundle.core.config import LOCAL_CONFIG_ANNOTATION, ROOT_MANIFEST_FILENAME
from kubebundle.core.models import Lifecycle, PackageRevision, TaskType
from kubebundle.resources import codec
from kubebundle.resources.resource_map import ResourceMap

logger = logging.getLogger("kubebundle.store")


class RevisionNotFound(LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Package revision '{name}' does not exist.")


class PackageStore(Protocol):

    async def create_revision(self, revision: PackageRevision) -> PackageRevision:
        ...

    async def get_resources(self, name: str) -> ResourceMap:
        ...

    async def replace_resources(self, name: str, resources: ResourceMap) -> None:
        ...


def initial_kptfile(revision: PackageRevision) -> str:
    """The Kptfile a store writes for an 'init' task."""
    task = revision.tasks[0] if revision.tasks else None
    body = {
        "apiVersion": "kpt.dev/v1",
        "kind": "Kptfile",
        "metadata": {
            "name": revision.package_name,
            "annotations": {LOCAL_CONFIG_ANNOTATION: "true"},
        },
    }
    info = task.to_dict().get("init") if task is not None and task.type == TaskType.INIT else None
    if info:
        body["info"] = info
    return codec.dump(body)


class InMemoryPackageStore:
    """Dictionary-backed PackageStore."""

    def __init__(self):
        self.revisions: Dict[str, PackageRevision] = {}
        self.resources: Dict[str, ResourceMap] = {}
        self.calls: List[str] = []

    def seed(self, name: str, resources: ResourceMap, package_name: str = "",
             repository: str = "local", revision: str = "v1",
             lifecycle: Lifecycle = Lifecycle.PUBLISHED) -> PackageRevision:
        """Registers an existing revision, e.g. one read from a local directory."""
        record = PackageRevision(package_name=package_name or name, repository=repository,
                                 revision=revision, lifecycle=lifecycle, name=name)
        self.revisions[name] = record
        self.resources[name] = resources
        return record

    def get_revision(self, name: str) -> PackageRevision:
        if name not in self.revisions:
            raise RevisionNotFound(name)
        return self.revisions[name]

    async def create_revision(self, revision: PackageRevision) -> PackageRevision:
        self.calls.append("create_revision")
        name = f"{revision.repository}.{revision.package_name}.{revision.revision}"
        if name in self.revisions:
            raise ValueError(f"Package revision '{name}' already exists.")

        base = revision.tasks[0] if revision.tasks else None
        if base is not None and base.type == TaskType.CLONE:
            # Clones start as a verbatim copy of the upstream file set
            if base.upstream_ref not in self.resources:
                raise RevisionNotFound(base.upstream_ref)
            resources = self.resources[base.upstream_ref]
        else:
            resources = ResourceMap({ROOT_MANIFEST_FILENAME: initial_kptfile(revision)})

        created = replace(revision, name=name)
        self.revisions[name] = created
        self.resources[name] = resources
        logger.info(f"Created package revision {name}")
        return created

    async def get_resources(self, name: str) -> ResourceMap:
        self.calls.append("get_resources")
        if name not in self.resources:
            raise RevisionNotFound(name)
        return self.resources[name]

    async def replace_resources(self, name: str, resources: ResourceMap) -> None:
        self.calls.append("replace_resources")
        if name not in self.resources:
            raise RevisionNotFound(name)
        self.resources[name] = resources
        logger.info(f"Replaced resources of {name} ({len(resources)} files)")