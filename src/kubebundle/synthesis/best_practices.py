#!/usr/bin/env python3
"""
KUBEBUNDLE PIPELINE SYNTHESIZER - Best Practices
------------------------------------------------
Turns a Best-Practices Selection into supporting documents plus extra
mutator/validator entries in the root manifest pipeline.

Each add-on step is a pure function returning a SynthesisDelta; the deltas
are folded in a fixed order (namespace, labels, validation) and applied to
the Resource Map in one pass: every new document is added first, so a
filename collision fails before the manifest is touched.

Author: KubeBundle Team
Date: 2026-10-17
"""

import logging
from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Any, Callable, Dict, List, Optional, Tuple

from kubebundle.core.config import (
    FUNCTION_CONFIG_API_VERSION,
    KUBEVAL_CONFIG_FILENAME,
    KUBEVAL_FN,
    LABEL_COMPONENT,
    LABEL_NAME,
    LABEL_PART_OF,
    LOCAL_CONFIG_ANNOTATION,
    NAMESPACE_FILENAME,
    NAMESPACE_RESOURCE_NAME,
    PACKAGE_CONTEXT_PATH,
    SET_LABELS_FILENAME,
    SET_LABELS_FN,
    SET_NAMESPACE_FILENAME,
    SET_NAMESPACE_FN,
)
from kubebundle.core.models import (
    BestPracticesSelection,
    FunctionRef,
    NamespaceOption,
    Pipeline,
    RootManifest,
)
from kubebundle.resources import codec
from kubebundle.resources.manifest import find_function, load_root_manifest, replace_root_manifest
from kubebundle.resources.resource_map import ResourceMap, documents_of
from kubebundle.synthesis.catalog import TransformCatalog

logger = logging.getLogger("kubebundle.synthesis")


@dataclass(frozen=True)
class SynthesisDelta:
    """What one add-on contributes: new files and pipeline entries."""
    documents: Tuple[Tuple[str, str], ...] = ()
    mutators: Tuple[FunctionRef, ...] = ()
    validators: Tuple[FunctionRef, ...] = ()

    def merge(self, other: "SynthesisDelta") -> "SynthesisDelta":
        return SynthesisDelta(
            documents=self.documents + other.documents,
            mutators=self.mutators + other.mutators,
            validators=self.validators + other.validators,
        )


@dataclass(frozen=True)
class SynthesisResult:
    resources: ResourceMap
    manifest: RootManifest
    added: Tuple[str, ...] = field(default=())


Step = Callable[[BestPracticesSelection, TransformCatalog], SynthesisDelta]


def create_resource(api_version: str, kind: str, name: str, local_config: bool = True) -> Dict[str, Any]:
    resource: Dict[str, Any] = {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {"name": name},
    }
    if local_config:
        resource["metadata"]["annotations"] = {LOCAL_CONFIG_ANNOTATION: "true"}
    return resource


def namespace_step(selection: BestPracticesSelection, catalog: TransformCatalog) -> SynthesisDelta:
    if not selection.set_namespace:
        return SynthesisDelta()

    documents: List[Tuple[str, str]] = []
    if selection.create_namespace:
        # A real deployable resource, so no local-config annotation
        namespace = create_resource("v1", "Namespace", NAMESPACE_RESOURCE_NAME, local_config=False)
        documents.append((NAMESPACE_FILENAME, codec.dump(namespace)))

    image = catalog.image(SET_NAMESPACE_FN)
    if selection.namespace_option == NamespaceOption.DEPLOYMENT:
        # Resolved at deploy time from the deployment's own identity
        mutator = FunctionRef(image=image, config_path=PACKAGE_CONTEXT_PATH)
    else:
        config = create_resource(FUNCTION_CONFIG_API_VERSION, "SetNamespace", SET_NAMESPACE_FN)
        config["namespace"] = selection.namespace
        documents.append((SET_NAMESPACE_FILENAME, codec.dump(config)))
        mutator = FunctionRef(image=image, config_path=SET_NAMESPACE_FILENAME)

    return SynthesisDelta(documents=tuple(documents), mutators=(mutator,))


def recommended_labels(selection: BestPracticesSelection) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    for key, value in ((LABEL_NAME, selection.application_name_label),
                       (LABEL_COMPONENT, selection.component_label),
                       (LABEL_PART_OF, selection.part_of_label)):
        if value and value.strip():
            labels[key] = value.strip()
    return labels


def labels_step(selection: BestPracticesSelection, catalog: TransformCatalog) -> SynthesisDelta:
    if not selection.set_labels:
        return SynthesisDelta()

    labels = recommended_labels(selection)
    if not labels:
        logger.debug("Label add-on selected but every label is blank; skipping")
        return SynthesisDelta()

    config = create_resource(FUNCTION_CONFIG_API_VERSION, "SetLabels", SET_LABELS_FN)
    config["labels"] = labels
    return SynthesisDelta(
        documents=((SET_LABELS_FILENAME, codec.dump(config)),),
        mutators=(FunctionRef(image=catalog.image(SET_LABELS_FN), config_path=SET_LABELS_FILENAME),),
    )


def validation_step(selection: BestPracticesSelection, catalog: TransformCatalog) -> SynthesisDelta:
    if not selection.set_kubeval:
        return SynthesisDelta()

    config = create_resource("v1", "ConfigMap", "kubeval-config")
    config["data"] = {"ignore_missing_schemas": "true"}
    return SynthesisDelta(
        documents=((KUBEVAL_CONFIG_FILENAME, codec.dump(config)),),
        validators=(FunctionRef(image=catalog.image(KUBEVAL_FN), config_path=KUBEVAL_CONFIG_FILENAME),),
    )


STEPS: Tuple[Step, ...] = (namespace_step, labels_step, validation_step)


def synthesize(resources: ResourceMap, manifest: RootManifest,
               selection: BestPracticesSelection, catalog: TransformCatalog) -> SynthesisResult:
    """
    Returns the patched map and manifest. Pipeline entries are appended, never
    de-duplicated: re-running a selection adds another pass of each transform.
    """
    if selection.is_empty:
        return SynthesisResult(resources=resources, manifest=manifest)

    delta = reduce(lambda acc, step: acc.merge(step(selection, catalog)), STEPS, SynthesisDelta())
    if delta == SynthesisDelta():
        return SynthesisResult(resources=resources, manifest=manifest)

    updated = resources
    for filename, content in delta.documents:
        updated = updated.add(content, filename)

    patched = replace(manifest, pipeline=Pipeline(
        mutators=manifest.pipeline.mutators + delta.mutators,
        validators=manifest.pipeline.validators + delta.validators,
    ))
    updated = replace_root_manifest(updated, patched)

    added = tuple(filename for filename, _ in delta.documents)
    logger.info(f"Synthesized {len(added)} document(s), {len(delta.mutators)} mutator(s), "
                f"{len(delta.validators)} validator(s) into {manifest.name}")
    return SynthesisResult(resources=updated, manifest=patched, added=added)


def apply_best_practices(resources: ResourceMap, selection: BestPracticesSelection,
                         catalog: TransformCatalog) -> ResourceMap:
    if selection.is_empty:
        return resources
    return synthesize(resources, load_root_manifest(resources), selection, catalog).resources


def _config_body(resources: ResourceMap, ref: FunctionRef, kind: str) -> Optional[Dict[str, Any]]:
    for doc in documents_of(resources):
        if doc.filename == ref.config_path and doc.kind == kind:
            return doc.body
    return None


def infer_selection(resources: ResourceMap) -> BestPracticesSelection:
    """Reads the add-ons an existing package already carries back into a selection."""
    manifest = load_root_manifest(resources)
    mutators = manifest.pipeline.mutators

    namespace_option = NamespaceOption.USER_DEFINED
    namespace = ""
    namespace_fn = find_function(mutators, SET_NAMESPACE_FN)
    if namespace_fn:
        if namespace_fn.config_path in (PACKAGE_CONTEXT_PATH, "package-context"):
            namespace_option = NamespaceOption.DEPLOYMENT
        else:
            body = _config_body(resources, namespace_fn, "SetNamespace")
            if body:
                namespace = str(body.get("namespace") or "")

    labels: Dict[str, Any] = {}
    labels_fn = find_function(mutators, SET_LABELS_FN)
    if labels_fn:
        body = _config_body(resources, labels_fn, "SetLabels")
        if body and isinstance(body.get("labels"), dict):
            labels = body["labels"]

    return BestPracticesSelection(
        set_namespace=namespace_fn is not None,
        create_namespace=False,
        namespace_option=namespace_option,
        namespace=namespace,
        set_labels=labels_fn is not None,
        application_name_label=str(labels.get(LABEL_NAME, "")),
        component_label=str(labels.get(LABEL_COMPONENT, "")),
        part_of_label=str(labels.get(LABEL_PART_OF, "")),
        set_kubeval=find_function(manifest.pipeline.validators, KUBEVAL_FN) is not None,
    )


def new_add_ons(requested: BestPracticesSelection, existing: BestPracticesSelection) -> BestPracticesSelection:
    """The part of 'requested' that a package already carrying 'existing' still lacks."""
    skipped = []
    selection = requested
    if requested.set_namespace and existing.set_namespace:
        skipped.append(SET_NAMESPACE_FN)
        selection = replace(selection, set_namespace=False, create_namespace=False)
    if requested.set_labels and existing.set_labels:
        skipped.append(SET_LABELS_FN)
        selection = replace(selection, set_labels=False)
    if requested.set_kubeval and existing.set_kubeval:
        skipped.append(KUBEVAL_FN)
        selection = replace(selection, set_kubeval=False)
    if skipped:
        logger.info(f"Package already carries {', '.join(skipped)}; not applying again")
    return selection
