#!/usr/bin/env python3
"""
KUBEBUNDLE CORE MODELS
----------------------
Defines the fundamental data structures used across the KubeBundle engine.
Documents, root manifests, requirements and package revisions are plain
dataclasses so that every engine operation can stay a pure transformation
over in-memory values.

Author: KubeBundle Team
Date: 2026-10-17
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Any, Dict, List, Tuple


@dataclass(frozen=True)
class Document:
    """
    A single parsed configuration unit of a package.

    One file of the Resource Map may hold several YAML documents; each of
    them becomes its own Document sharing the same filename.
    """
    filename: str                 # Key of the owning Resource Map entry
    api_version: str              # e.g. 'apps/v1'
    kind: str                     # e.g. 'Deployment'
    name: str                     # metadata.name ('' when absent)
    namespace: Optional[str] = None
    is_local_config: bool = False # Package-internal metadata, never deployed
    body: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    index: int = 0                # Position of the document inside its file

    @property
    def key(self) -> str:
        return f"{self.filename}:{self.index}"


@dataclass(frozen=True)
class FunctionRef:
    """A pipeline entry: the transform image plus the file holding its config."""
    image: str
    config_path: Optional[str] = None
    # Keys other than image/configPath (name, configMap, ...) kept verbatim
    extra: Tuple[Tuple[str, Any], ...] = ()

    @property
    def function_name(self) -> str:
        """'gcr.io/kpt-fn/set-namespace:v0.4.1' -> 'set-namespace'"""
        repository = self.image.split("@", 1)[0]
        last = repository.rsplit("/", 1)[-1]
        return last.split(":", 1)[0]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"image": self.image}
        if self.config_path:
            data["configPath"] = self.config_path
        for key, value in self.extra:
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionRef":
        extra = tuple((k, v) for k, v in data.items() if k not in ("image", "configPath"))
        return cls(image=str(data.get("image", "")), config_path=data.get("configPath"), extra=extra)


@dataclass(frozen=True)
class PackageInfo:
    description: Optional[str] = None
    keywords: Optional[Tuple[str, ...]] = None
    site: Optional[str] = None


@dataclass(frozen=True)
class Pipeline:
    mutators: Tuple[FunctionRef, ...] = ()
    validators: Tuple[FunctionRef, ...] = ()


@dataclass(frozen=True)
class RootManifest:
    """Parsed view of the package's Kptfile."""
    name: str
    info: PackageInfo = field(default_factory=PackageInfo)
    pipeline: Pipeline = field(default_factory=Pipeline)
    document: Optional[Document] = field(default=None, compare=False, repr=False)


class RequirementType(str, Enum):
    RESOURCE = "resource"
    CRD = "crd"
    IMAGE = "image"


@dataclass
class Requirement:
    """
    Base of the requirement variants produced by the Dependency Extractor.

    'fulfilled' stays None until a resolution pass marks it; only resource
    requirements can ever be resolved inside a package.
    """
    fulfilled: Optional[bool] = field(default=None, init=False)

    @property
    def type(self) -> RequirementType:
        raise NotImplementedError

    def message(self) -> str:
        raise NotImplementedError


@dataclass
class ResourceRequirement(Requirement):
    kind: str = ""
    name: str = ""
    namespace: Optional[str] = None

    @property
    def type(self) -> RequirementType:
        return RequirementType.RESOURCE

    def message(self) -> str:
        return f"{self.kind} {self.name} expected"


@dataclass
class CRDRequirement(Requirement):
    group_version_kind: str = ""

    @property
    def type(self) -> RequirementType:
        return RequirementType.CRD

    def message(self) -> str:
        return f"CRD {self.group_version_kind} must be installed"


@dataclass
class ImageRequirement(Requirement):
    image: str = ""

    @property
    def type(self) -> RequirementType:
        return RequirementType.IMAGE

    def message(self) -> str:
        return f"Image {self.image} must exist"


@dataclass
class DocumentRequirements:
    """A document together with everything it needs from its environment."""
    document: Document
    requires: List[Requirement] = field(default_factory=list)


class NamespaceOption(str, Enum):
    USER_DEFINED = "user-defined"   # Literal namespace baked into the package
    DEPLOYMENT = "deployment"       # Bound per deployment via package context


@dataclass(frozen=True)
class BestPracticesSelection:
    """Which best-practice add-ons to synthesize into a package."""
    set_namespace: bool = False
    create_namespace: bool = False
    namespace_option: NamespaceOption = NamespaceOption.USER_DEFINED
    namespace: str = ""
    set_labels: bool = False
    application_name_label: str = ""
    component_label: str = ""
    part_of_label: str = ""
    set_kubeval: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.set_namespace or self.set_labels or self.set_kubeval)


@dataclass(frozen=True)
class CatalogFunction:
    """One published version of a transform in the function catalog."""
    name: str
    version: str
    image: str
    description: str = ""
    keywords: Tuple[str, ...] = ()


class Lifecycle(str, Enum):
    DRAFT = "Draft"
    PROPOSED = "Proposed"
    PUBLISHED = "Published"


class TaskType(str, Enum):
    INIT = "init"
    CLONE = "clone"


@dataclass(frozen=True)
class Task:
    """A provenance entry in a revision's task history."""
    type: TaskType
    description: Optional[str] = None
    keywords: Optional[Tuple[str, ...]] = None
    site: Optional[str] = None
    upstream_ref: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.type == TaskType.CLONE:
            return {
                "type": self.type.value,
                "clone": {"upstreamRef": {"upstreamRef": {"name": self.upstream_ref}}},
            }

        init: Dict[str, Any] = {}
        if self.description:
            init["description"] = self.description
        if self.keywords:
            init["keywords"] = list(self.keywords)
        if self.site:
            init["site"] = self.site
        return {"type": self.type.value, "init": init}


@dataclass(frozen=True)
class PackageRevision:
    """A named, versioned instance of a package plus its lifecycle state."""
    package_name: str
    repository: str
    revision: str
    lifecycle: Lifecycle = Lifecycle.DRAFT
    tasks: Tuple[Task, ...] = ()
    name: str = ""   # Assigned by the store on creation

    def to_resource(self) -> Dict[str, Any]:
        resource: Dict[str, Any] = {
            "apiVersion": "porch.kpt.dev/v1alpha1",
            "kind": "PackageRevision",
            "metadata": {"namespace": "default"},
            "spec": {
                "packageName": self.package_name,
                "revision": self.revision,
                "repository": self.repository,
                "lifecycle": self.lifecycle.value,
                "tasks": [task.to_dict() for task in self.tasks],
            },
        }
        if self.name:
            resource["metadata"]["name"] = self.name
        return resource
