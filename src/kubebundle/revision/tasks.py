#!/usr/bin/env python3
"""
KUBEBUNDLE REVISION TASKS
-------------------------
Provenance tasks and the initial PackageRevision record for a new package:
an 'init' task for packages created from scratch, a 'clone' task pointing
at the source revision otherwise. New revisions always start as Draft.

Author: KubeBundle Team
Date: 2026-10-17
"""

from typing import Iterable, Optional

from kubebundle.core.models import Lifecycle, PackageRevision, Task, TaskType
from kubebundle.resources.manifest import split_keywords


def get_init_task(description: str = "", keywords: str = "", site: str = "") -> Task:
    return Task(
        type=TaskType.INIT,
        description=description or None,
        keywords=split_keywords(keywords),
        site=site or None,
    )


def get_clone_task(source_revision_name: str) -> Task:
    return Task(type=TaskType.CLONE, upstream_ref=source_revision_name)


def new_package_revision(repository: str, package_name: str, revision: str,
                         tasks: Iterable[Task]) -> PackageRevision:
    return PackageRevision(
        package_name=package_name,
        repository=repository,
        revision=revision,
        lifecycle=Lifecycle.DRAFT,
        tasks=tuple(tasks),
    )


def can_clone_revision(revision: Optional[PackageRevision]) -> bool:
    """Only published revisions are offered as clone sources."""
    return revision is not None and revision.lifecycle == Lifecycle.PUBLISHED
