#!/usr/bin/env python3
"""
KUBEBUNDLE RESOURCE MAP
-----------------------
The ordered filename -> YAML text collection holding one package revision's
complete file set. A ResourceMap is an immutable value: add/update/remove
return new maps, so callers can diff, dry-run or undo freely.

Author: KubeBundle Team
Date: 2026-10-17
"""

import os
import logging
from pathlib import Path
from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional, Any

from ruamel.yaml import YAMLError

from kubebundle.core.config import LOCAL_CONFIG_ANNOTATION, ROOT_MANIFEST_KIND
from kubebundle.core.errors import DuplicateFilename, MissingRootManifest, ResourceNotFound
from kubebundle.core.models import Document
from kubebundle.resources import codec

logger = logging.getLogger("kubebundle.resources")

YAML_SUFFIXES = (".yaml", ".yml")


def is_yaml_file(filename: str) -> bool:
    return filename.endswith(YAML_SUFFIXES) or filename.rsplit("/", 1)[-1] == ROOT_MANIFEST_KIND


class ResourceMap(Mapping):
    """Immutable mapping of filename to raw document content.

    Iteration follows insertion order; equality does not.
    """

    def __init__(self, entries: Optional[Mapping] = None):
        self._entries: Dict[str, str] = dict(entries or {})

    def __getitem__(self, filename: str) -> str:
        return self._entries[filename]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResourceMap({list(self._entries)})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other.items())
        return NotImplemented

    def __hash__(self):
        return hash(frozenset(self._entries.items()))

    def add(self, content: str, filename: str) -> "ResourceMap":
        if filename in self._entries:
            raise DuplicateFilename(filename)
        entries = dict(self._entries)
        entries[filename] = content
        return ResourceMap(entries)

    def update(self, target: Document, content: str) -> "ResourceMap":
        """Replaces the content of the file that holds 'target'. Order is preserved."""
        if target.filename not in self._entries:
            raise ResourceNotFound(target.filename)
        entries = dict(self._entries)
        entries[target.filename] = content
        return ResourceMap(entries)

    def remove(self, filename: str) -> "ResourceMap":
        if filename not in self._entries:
            raise ResourceNotFound(filename)
        return ResourceMap({k: v for k, v in self._entries.items() if k != filename})

    def documents(self) -> List[Document]:
        return documents_of(self)

    def root_manifest(self) -> Document:
        return root_manifest_of(self)

    def diff(self, other: "ResourceMap") -> Dict[str, List[str]]:
        """Filenames added, removed and changed when going from self to other."""
        return {
            "added": [f for f in other if f not in self._entries],
            "removed": [f for f in self._entries if f not in other],
            "changed": [f for f in other if f in self._entries and self._entries[f] != other[f]],
        }

    @classmethod
    def from_directory(cls, path) -> "ResourceMap":
        """Reads a local package directory, keyed by POSIX paths relative to its root."""
        root = Path(path).resolve()
        entries: Dict[str, str] = {}
        for file_path in sorted(root.rglob("*")):
            # Exclude symlinks to prevent loops
            if not file_path.is_file() or file_path.is_symlink():
                continue
            rel = file_path.relative_to(root).as_posix()
            if any(part.startswith(".") for part in rel.split("/")):
                continue
            try:
                entries[rel] = file_path.read_text(encoding="utf-8-sig")
            except UnicodeDecodeError:
                logger.warning(f"Skipping non-text file {rel}")
        return cls(entries)

    def write_to(self, path) -> List[str]:
        """Writes entries whose content differs from disk. Returns the written filenames."""
        root = Path(path).resolve()
        written = []
        for filename, content in self._entries.items():
            target = root / filename
            if target.exists() and target.read_text(encoding="utf-8-sig") == content:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(target, content)
            written.append(filename)
        return written


def _atomic_write(target_path: Path, content: str):
    temp_file = target_path.with_name(target_path.name + ".kubebundle.tmp")
    try:
        temp_file.write_text(content, encoding="utf-8")
        os.replace(temp_file, target_path)
    except OSError as e:
        if temp_file.exists():
            temp_file.unlink()
        raise IOError(f"Atomic write failed for {target_path}: {e}") from e


def to_document(filename: str, body: Any, index: int = 0) -> Optional[Document]:
    """Builds the Document view of one parsed YAML body, or None if it is not a resource."""
    if not isinstance(body, dict):
        return None
    api_version = body.get("apiVersion")
    kind = body.get("kind")
    if not api_version or not kind:
        return None

    metadata = body.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    annotations = metadata.get("annotations") or {}
    if not isinstance(annotations, dict):
        annotations = {}

    local = str(annotations.get(LOCAL_CONFIG_ANNOTATION, "")).lower() == "true"
    namespace = metadata.get("namespace")
    return Document(
        filename=filename,
        api_version=str(api_version),
        kind=str(kind),
        name=str(metadata.get("name") or ""),
        namespace=str(namespace) if namespace else None,
        is_local_config=local,
        body=body,
        index=index,
    )


def parse_entry(filename: str, content: str) -> List[Document]:
    try:
        bodies = codec.load_all(content)
    except YAMLError as e:
        logger.debug(f"Excluding unparseable file {filename}: {e}")
        return []

    documents = []
    for index, body in enumerate(bodies):
        document = to_document(filename, body, index)
        if document is None:
            logger.debug(f"Excluding non-resource document {filename}:{index}")
            continue
        documents.append(document)
    return documents


def documents_of(resources: Mapping) -> List[Document]:
    """Parsed view of every YAML entry, in map order then in-file order."""
    documents: List[Document] = []
    for filename, content in resources.items():
        if not is_yaml_file(filename):
            continue
        documents.extend(parse_entry(filename, content))
    return documents


def root_manifest_of(resources: Mapping) -> Document:
    # Sub-package Kptfiles live in sub-directories and are not candidates
    candidates = [
        doc for doc in documents_of(resources)
        if doc.kind == ROOT_MANIFEST_KIND and "/" not in doc.filename
    ]
    if len(candidates) != 1:
        raise MissingRootManifest(len(candidates))
    return candidates[0]


def add(resources: ResourceMap, content: str, filename: str) -> ResourceMap:
    return resources.add(content, filename)


def update(resources: ResourceMap, target: Document, content: str) -> ResourceMap:
    return resources.update(target, content)