#!/usr/bin/env python3
"""
KUBEBUNDLE ERRORS
-----------------
Every failure the engine raises on purpose derives from KubeBundleError, so
callers (the CLI, a UI) can separate engine contract violations from
transport errors bubbling up unchanged from a package store.

Author: KubeBundle Team
Date: 2026-10-17
"""


class KubeBundleError(RuntimeError):
    """Base class for deterministic engine failures."""


class MissingRootManifest(KubeBundleError):
    """Zero or several root-level Kptfile documents were found."""

    def __init__(self, count: int):
        self.count = count
        if count == 0:
            message = "Package has no root Kptfile."
        else:
            message = f"Package has {count} root Kptfile documents; expected exactly one."
        super().__init__(message)


class DuplicateFilename(KubeBundleError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Resource '{filename}' already exists in the package.")


class ResourceNotFound(KubeBundleError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Resource '{filename}' does not exist in the package.")


NotFound = ResourceNotFound


class TargetUndefined(KubeBundleError):
    def __init__(self):
        super().__init__("Target repository is not defined.")


class FunctionNotFound(KubeBundleError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Function '{name}' is not available in the catalog.")


class InvalidDocument(KubeBundleError):
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        super().__init__(f"Invalid document '{filename}': {reason}")
