#!/usr/bin/env python3
"""
KUBEBUNDLE REVISION ASSEMBLY - The Orchestrator
-----------------------------------------------
Creates a new package revision (from scratch or by cloning) through the
package store, then applies the best-practice synthesis and, for clones,
the caller-supplied package info, and writes the result back.

Exactly one create call, then at most one fetch-then-replace cycle. There
are no retries: a store failure propagates as-is, leaving whatever was
already created as the externally visible state.

Author: KubeBundle Team
Date: 2026-10-17
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from kubebundle.core.config import DEFAULT_REVISION
from kubebundle.core.errors import TargetUndefined
from kubebundle.core.models import BestPracticesSelection, PackageRevision
from kubebundle.resources.manifest import load_root_manifest, replace_root_manifest, split_keywords, with_info
from kubebundle.resources.resource_map import ResourceMap
from kubebundle.revision.store import PackageStore
from kubebundle.revision.tasks import get_clone_task, get_init_task, new_package_revision
from kubebundle.synthesis.best_practices import apply_best_practices
from kubebundle.synthesis.catalog import TransformCatalog

logger = logging.getLogger("kubebundle.assembly")


@dataclass(frozen=True)
class RevisionRequest:
    """Everything the caller chose for the new revision."""
    package_name: str
    target_repository: Optional[str] = None
    description: str = ""
    keywords: str = ""            # Comma-separated, as typed by the user
    site: str = ""
    source: Optional[PackageRevision] = None   # Set for clone actions
    selection: BestPracticesSelection = field(default_factory=BestPracticesSelection)
    revision: str = DEFAULT_REVISION

    @property
    def is_clone(self) -> bool:
        return self.source is not None


class RevisionAssembler:

    def __init__(self, store: PackageStore, catalog: TransformCatalog):
        self.store = store
        self.catalog = catalog

    def build_revision(self, request: RevisionRequest) -> PackageRevision:
        if not request.target_repository:
            raise TargetUndefined()

        if request.is_clone:
            base_task = get_clone_task(request.source.name)
        else:
            base_task = get_init_task(request.description, request.keywords, request.site)

        return new_package_revision(
            request.target_repository, request.package_name, request.revision, [base_task])

    def finalize_resources(self, resources: ResourceMap, request: RevisionRequest) -> ResourceMap:
        """Pure part of assembly: best practices first, then the clone's info block."""
        updated = apply_best_practices(resources, request.selection, self.catalog)
        if request.is_clone:
            updated = update_manifest_info(updated, request.description, request.keywords, request.site)
        return updated

    async def assemble(self, request: RevisionRequest) -> PackageRevision:
        # Precondition, checked before anything reaches the store
        revision = self.build_revision(request)

        created = await self.store.create_revision(revision)
        logger.info(f"Created {created.name} ({revision.tasks[0].type.value}) in {revision.repository}")

        if not request.is_clone and request.selection.is_empty:
            return created

        resources = await self.store.get_resources(created.name)
        updated = self.finalize_resources(resources, request)

        if updated != resources:
            await self.store.replace_resources(created.name, updated)
            logger.info(f"Updated resources of {created.name}: {resources.diff(updated)}")

        return created


def update_manifest_info(resources: ResourceMap, description: str = "",
                         keywords: str = "", site: str = "") -> ResourceMap:
    """Overwrites the root manifest's info block; blank keywords mean 'unset'."""
    manifest = load_root_manifest(resources)
    patched = with_info(manifest, description, split_keywords(keywords), site)
    return replace_root_manifest(resources, patched)
