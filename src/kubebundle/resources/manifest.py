#!/usr/bin/env python3
"""
KUBEBUNDLE ROOT MANIFEST
------------------------
Reads the package Kptfile into a RootManifest and writes a patched one back.
Only the 'info' and 'pipeline' blocks are rewritten; every other key,
comment and ordering of the original document is carried through.

Author: KubeBundle Team
Date: 2026-10-17
"""

import copy
from dataclasses import replace
from typing import Any, Dict, Iterable, Optional, Tuple

from ruamel.yaml import YAMLError

from kubebundle.core.errors import InvalidDocument
from kubebundle.core.models import Document, FunctionRef, PackageInfo, Pipeline, RootManifest
from kubebundle.resources import codec
from kubebundle.resources.resource_map import ResourceMap, root_manifest_of


def _refs(raw: Any) -> Tuple[FunctionRef, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(FunctionRef.from_dict(item) for item in raw if isinstance(item, dict))


def parse_root_manifest(document: Document) -> RootManifest:
    body = document.body
    info = body.get("info") or {}
    pipeline = body.get("pipeline") or {}
    if not isinstance(info, dict) or not isinstance(pipeline, dict):
        raise InvalidDocument(document.filename, "'info' and 'pipeline' must be mappings")

    keywords = info.get("keywords")
    return RootManifest(
        name=document.name,
        info=PackageInfo(
            description=info.get("description"),
            keywords=tuple(str(k) for k in keywords) if keywords else None,
            site=info.get("site"),
        ),
        pipeline=Pipeline(
            mutators=_refs(pipeline.get("mutators")),
            validators=_refs(pipeline.get("validators")),
        ),
        document=document,
    )


def load_root_manifest(resources: ResourceMap) -> RootManifest:
    return parse_root_manifest(root_manifest_of(resources))


def _patched_body(manifest: RootManifest) -> Dict[str, Any]:
    body = copy.deepcopy(manifest.document.body)

    info = body.get("info")
    if not isinstance(info, dict):
        info = {}
    for key, value in (("description", manifest.info.description),
                       ("keywords", list(manifest.info.keywords) if manifest.info.keywords else None),
                       ("site", manifest.info.site)):
        if value:
            info[key] = value
        else:
            info.pop(key, None)
    if info:
        body["info"] = info
    else:
        body.pop("info", None)

    pipeline = body.get("pipeline")
    if not isinstance(pipeline, dict):
        pipeline = {}
    for key, refs in (("mutators", manifest.pipeline.mutators),
                      ("validators", manifest.pipeline.validators)):
        if refs:
            pipeline[key] = [ref.to_dict() for ref in refs]
        else:
            pipeline.pop(key, None)
    if pipeline:
        body["pipeline"] = pipeline
    else:
        body.pop("pipeline", None)

    return body


def render_root_manifest(manifest: RootManifest, content: Optional[str] = None) -> str:
    """
    Serializes the manifest. When 'content' (the original file text) is
    given, sibling documents in the same file are kept in place.
    """
    if manifest.document is None:
        raise InvalidDocument("Kptfile", "manifest is not bound to a document")

    body = _patched_body(manifest)
    if content is None:
        return codec.dump(body)

    try:
        bodies = codec.load_all(content)
    except YAMLError as e:
        raise InvalidDocument(manifest.document.filename, str(e)) from e
    bodies[manifest.document.index] = body
    return codec.dump_all(bodies)


def replace_root_manifest(resources: ResourceMap, manifest: RootManifest) -> ResourceMap:
    target = manifest.document
    content = render_root_manifest(manifest, resources.get(target.filename))
    return resources.update(target, content)


def with_info(manifest: RootManifest, description: Optional[str] = None,
              keywords: Optional[Iterable[str]] = None, site: Optional[str] = None) -> RootManifest:
    """Blank values unset the field rather than storing empty strings or lists."""
    keywords = tuple(k for k in (keywords or ()) if k)
    info = PackageInfo(description=description or None, keywords=keywords or None, site=site or None)
    return replace(manifest, info=info)


def split_keywords(text: Optional[str]) -> Optional[Tuple[str, ...]]:
    """'a, b ,c' -> ('a', 'b', 'c'); blank input means unset."""
    if not text or not text.strip():
        return None
    return tuple(k.strip() for k in text.split(",") if k.strip())


def find_function(refs: Iterable[FunctionRef], name: str) -> Optional[FunctionRef]:
    for ref in refs:
        if ref.function_name == name:
            return ref
    return None
