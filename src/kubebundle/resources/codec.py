#!/usr/bin/env python3
"""
KUBEBUNDLE CODEC - High-Fidelity Round-Trip
-------------------------------------------
Loads and dumps package documents with ruamel.yaml in round-trip mode so
that comments and key order of documents the engine edits survive the
read-modify-write cycle.

Author: KubeBundle Team
Date: 2026-10-17
"""

import io
from typing import Any, List, Iterable

from ruamel.yaml import YAML
from ruamel.yaml.comments import Comment, CommentedMap, CommentedSeq

PREFERRED_ORDER = ["apiVersion", "kind", "metadata", "info", "pipeline", "spec", "data"]


def _yaml() -> YAML:
    yaml = YAML(typ='rt')
    yaml.preserve_quotes = True
    # Standard K8s: 2 spaces, sequences offset by 2 under their key
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    return yaml


def load_all(text: str) -> List[Any]:
    """Parses every document in a stream, dropping empty ones. Raises YAMLError."""
    return [doc for doc in _yaml().load_all(text) if doc is not None]


def load(text: str) -> Any:
    docs = load_all(text)
    return docs[0] if docs else None


def _to_commented(data: Any) -> Any:
    """
    Recursively rebuilds mappings as CommentedMaps with the preferred key
    order, carrying comment metadata over from round-trip input.
    """
    if isinstance(data, dict):
        keys = list(data.keys())

        def sort_logic(key):
            if key in PREFERRED_ORDER:
                return PREFERRED_ORDER.index(key)
            # Unknown keys keep their relative original position
            return len(PREFERRED_ORDER) + keys.index(key)

        ordered = CommentedMap()
        if isinstance(data, CommentedMap) and data.ca.comment:
            ordered.ca.comment = data.ca.comment
        for key in sorted(keys, key=sort_logic):
            ordered[key] = _to_commented(data[key])
            if isinstance(data, CommentedMap) and key in data.ca.items:
                ordered.ca.items[key] = data.ca.items[key]
        return ordered

    if isinstance(data, (list, tuple)):
        seq = CommentedSeq(_to_commented(item) for item in data)
        if isinstance(data, CommentedSeq):
            setattr(seq, Comment.attrib, data.ca)
        return seq

    return data


def dump(data: Any) -> str:
    stream = io.StringIO()
    _yaml().dump(_to_commented(data), stream)
    return stream.getvalue()


def dump_all(docs: Iterable[Any]) -> str:
    """Exports documents into a single string with explicit separators."""
    stream = io.StringIO()
    yaml = _yaml()
    for i, doc in enumerate(docs):
        if i > 0:
            stream.write("---\n")
        yaml.dump(_to_commented(doc), stream)
    return stream.getvalue()
