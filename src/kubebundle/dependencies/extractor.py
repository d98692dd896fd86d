#!/usr/bin/env python3
"""
KUBEBUNDLE DEPENDENCY EXTRACTOR - Static Fulfillment
----------------------------------------------------
Derives what every document of a package needs from its environment
(namespaces, secrets, service accounts, custom types, images) and marks
which of those needs another document in the same package satisfies.

No cluster or registry is consulted: custom types and images are always
reported as open environmental prerequisites.

Author: KubeBundle Team
Date: 2026-10-17
"""

import logging
from collections import Counter
from typing import Any, Callable, Dict, List, Mapping

from kubebundle.core.config import BUILTIN_GROUPS
from kubebundle.core.models import (
    CRDRequirement,
    Document,
    DocumentRequirements,
    ImageRequirement,
    Requirement,
    ResourceRequirement,
)
from kubebundle.resources.resource_map import documents_of

logger = logging.getLogger("kubebundle.dependencies")

Rule = Callable[[Document], List[Requirement]]


class DependencyExtractor:
    """
    Runs every document through the requirement rules, then resolves the
    resource requirements against the package's own documents.
    Stateless: each call to extract() starts from scratch.
    """

    def __init__(self):
        # Order matters: it fixes the order of each document's requirements
        self.active_rules: List[Rule] = [
            self._rule_namespace,
            self._rule_custom_type,
            self._rule_workload,
        ]

    def extract(self, resources: Mapping) -> List[DocumentRequirements]:
        documents = documents_of(resources)
        results = [
            DocumentRequirements(document=doc, requires=self.requirements_for(doc))
            for doc in documents
        ]

        for result in results:
            for requirement in result.requires:
                self._resolve(requirement, documents)

        return results

    def requirements_for(self, doc: Document) -> List[Requirement]:
        requires: List[Requirement] = []
        for rule in self.active_rules:
            requires.extend(rule(doc))
        return requires

    def _resolve(self, requirement: Requirement, documents: List[Document]):
        # Custom types and images live outside the package boundary
        if not isinstance(requirement, ResourceRequirement):
            return
        if any(d.kind == requirement.kind and d.name == requirement.name for d in documents):
            requirement.fulfilled = True

    def _rule_namespace(self, doc: Document) -> List[Requirement]:
        if doc.namespace:
            return [ResourceRequirement(kind="Namespace", name=doc.namespace)]
        return []

    def _rule_custom_type(self, doc: Document) -> List[Requirement]:
        """Anything outside the core and built-in groups needs its CRD installed."""
        if doc.is_local_config or "/" not in doc.api_version:
            return []
        group = doc.api_version.split("/", 1)[0]
        if group in BUILTIN_GROUPS:
            return []
        return [CRDRequirement(group_version_kind=f"{doc.api_version}/{doc.kind}")]

    def _rule_workload(self, doc: Document) -> List[Requirement]:
        if doc.kind != "Deployment":
            return []

        pod_spec = _dig(doc.body, "spec", "template", "spec")
        if not isinstance(pod_spec, dict):
            logger.debug(f"Deployment {doc.name} in {doc.filename} has no pod template")
            return []
        containers = pod_spec.get("containers")
        if not isinstance(containers, list):
            containers = []
        containers = [c for c in containers if isinstance(c, dict)]

        requires: List[Requirement] = []
        for container in containers:
            env_vars = container.get("env")
            if not isinstance(env_vars, list):
                continue
            for env in env_vars:
                secret_name = _dig(env, "valueFrom", "secretKeyRef", "name")
                if secret_name:
                    requires.append(ResourceRequirement(
                        kind="Secret", name=str(secret_name), namespace=doc.namespace))

        for container in containers:
            image = container.get("image")
            if image:
                requires.append(ImageRequirement(image=str(image)))

        service_account = pod_spec.get("serviceAccountName")
        if service_account:
            requires.append(ResourceRequirement(
                kind="ServiceAccount", name=str(service_account), namespace=doc.namespace))

        return requires


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def extract_requirements(resources: Mapping) -> List[DocumentRequirements]:
    return DependencyExtractor().extract(resources)


def unfulfilled(results: List[DocumentRequirements]) -> List[Requirement]:
    """Every requirement the package does not satisfy by itself, in document order."""
    return [r for result in results for r in result.requires if not r.fulfilled]


def summarize(results: List[DocumentRequirements]) -> Dict[str, int]:
    counts: Counter = Counter()
    for result in results:
        for requirement in result.requires:
            counts[requirement.type.value] += 1
            counts["fulfilled" if requirement.fulfilled else "open"] += 1
    summary = {"documents": len(results), "total": sum(len(r.requires) for r in results)}
    for key in ("resource", "crd", "image", "fulfilled", "open"):
        summary[key] = counts.get(key, 0)
    return summary
