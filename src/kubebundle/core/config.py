#!/usr/bin/env python3
"""
KUBEBUNDLE CONFIGURATION
------------------------
Reserved identifiers shared by the engine, plus the runtime Settings the
CLI resolves from flags and KUBEBUNDLE_* environment variables.

Author: KubeBundle Team
Date: 2026-10-17
"""

import os
from dataclasses import dataclass
from typing import Optional, Mapping

# Reserved identifiers
ROOT_MANIFEST_KIND = "Kptfile"
ROOT_MANIFEST_FILENAME = "Kptfile"
LOCAL_CONFIG_ANNOTATION = "config.kubernetes.io/local-config"
PACKAGE_CONTEXT_PATH = "package-context.yaml"
FUNCTION_CONFIG_API_VERSION = "fn.kpt.dev/v1alpha1"

# Built-in API groups that never need a CRD installed
BUILTIN_GROUPS = ("apps", "rbac.authorization.k8s.io")

# Transform names looked up in the catalog
SET_NAMESPACE_FN = "set-namespace"
SET_LABELS_FN = "set-labels"
KUBEVAL_FN = "kubeval"

# Recommended label vocabulary
LABEL_NAME = "app.kubernetes.io/name"
LABEL_COMPONENT = "app.kubernetes.io/component"
LABEL_PART_OF = "app.kubernetes.io/part-of"

# Filenames of synthesized documents
NAMESPACE_FILENAME = "namespace.yaml"
SET_NAMESPACE_FILENAME = "set-namespace.yaml"
SET_LABELS_FILENAME = "set-labels.yaml"
KUBEVAL_CONFIG_FILENAME = "kubeval-config.yaml"
NAMESPACE_RESOURCE_NAME = "this-namespace"

DEFAULT_REVISION = "v1"

# Snapshot used when no catalog file is supplied
DEFAULT_CATALOG = [
    {"name": "set-namespace", "version": "v0.4.1", "image": "gcr.io/kpt-fn/set-namespace:v0.4.1"},
    {"name": "set-namespace", "version": "v0.3.4", "image": "gcr.io/kpt-fn/set-namespace:v0.3.4"},
    {"name": "set-labels", "version": "v0.2.0", "image": "gcr.io/kpt-fn/set-labels:v0.2.0"},
    {"name": "set-labels", "version": "v0.1.5", "image": "gcr.io/kpt-fn/set-labels:v0.1.5"},
    {"name": "kubeval", "version": "v0.3.0", "image": "gcr.io/kpt-fn/kubeval:v0.3.0"},
    {"name": "kubeval", "version": "v0.2.0", "image": "gcr.io/kpt-fn/kubeval:v0.2.0"},
]


@dataclass(frozen=True)
class Settings:
    """Runtime knobs for the CLI; the engine itself takes explicit arguments."""
    catalog_path: Optional[str] = None
    new_revision_name: str = DEFAULT_REVISION
    log_level: str = "INFO"

    @classmethod
    def resolve(cls, catalog_path: Optional[str] = None, verbose: bool = False,
                environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Explicit values win over KUBEBUNDLE_* variables, which win over defaults."""
        env = os.environ if environ is None else environ
        level = "DEBUG" if verbose else env.get("KUBEBUNDLE_LOG_LEVEL", "INFO").upper()
        return cls(
            catalog_path=catalog_path or env.get("KUBEBUNDLE_CATALOG") or None,
            new_revision_name=env.get("KUBEBUNDLE_REVISION", DEFAULT_REVISION),
            log_level=level,
        )
