import asyncio

import pytest

from conftest import KPTFILE
from kubebundle.core.errors import TargetUndefined
from kubebundle.core.models import BestPracticesSelection, Lifecycle, NamespaceOption, TaskType
from kubebundle.resources.manifest import load_root_manifest
from kubebundle.resources.resource_map import ResourceMap
from kubebundle.revision.assembly import RevisionAssembler, RevisionRequest, update_manifest_info
from kubebundle.revision.store import InMemoryPackageStore, RevisionNotFound
from kubebundle.revision.tasks import can_clone_revision, get_clone_task, get_init_task


class FailingReplaceStore(InMemoryPackageStore):
    async def replace_resources(self, name, resources):
        raise ConnectionError("store unavailable")


@pytest.fixture
def store(package):
    store = InMemoryPackageStore()
    store.seed("blueprints.billing-app.v1", package, package_name="billing-app", repository="blueprints")
    return store


def test_init_task_splits_keywords():
    task = get_init_task("Billing", " billing , payments,", "https://example.com")
    assert task.type == TaskType.INIT
    assert task.to_dict() == {
        "type": "init",
        "init": {"description": "Billing", "keywords": ["billing", "payments"], "site": "https://example.com"},
    }


def test_init_task_blank_fields_omitted():
    assert get_init_task("", "  ", "").to_dict() == {"type": "init", "init": {}}


def test_clone_task_references_source():
    assert get_clone_task("blueprints.billing-app.v1").to_dict() == {
        "type": "clone",
        "clone": {"upstreamRef": {"upstreamRef": {"name": "blueprints.billing-app.v1"}}},
    }


def test_new_revisions_are_drafts(store, catalog):
    revision = RevisionAssembler(store, catalog).build_revision(
        RevisionRequest(package_name="billing", target_repository="deployments"))
    resource = revision.to_resource()
    assert revision.lifecycle == Lifecycle.DRAFT
    assert resource["spec"]["lifecycle"] == "Draft"
    assert resource["spec"]["revision"] == "v1"
    assert resource["spec"]["repository"] == "deployments"
    assert len(resource["spec"]["tasks"]) == 1


def test_target_undefined_before_any_store_call(store, catalog):
    with pytest.raises(TargetUndefined):
        asyncio.run(RevisionAssembler(store, catalog).assemble(RevisionRequest(package_name="billing")))
    assert store.calls == []


def test_init_without_best_practices_skips_fetch(store, catalog):
    request = RevisionRequest(package_name="fresh", target_repository="deployments", description="Fresh one")
    created = asyncio.run(RevisionAssembler(store, catalog).assemble(request))

    assert store.calls == ["create_revision"]
    manifest = load_root_manifest(store.resources[created.name])
    assert manifest.name == "fresh"
    assert manifest.info.description == "Fresh one"
    assert manifest.document.is_local_config is True


def test_init_with_best_practices_writes_back_once(store, catalog):
    request = RevisionRequest(
        package_name="fresh", target_repository="deployments",
        selection=BestPracticesSelection(set_namespace=True, namespace_option=NamespaceOption.DEPLOYMENT,
                                         set_kubeval=True),
    )
    created = asyncio.run(RevisionAssembler(store, catalog).assemble(request))

    assert store.calls == ["create_revision", "get_resources", "replace_resources"]
    resources = store.resources[created.name]
    assert "kubeval-config.yaml" in resources
    pipeline = load_root_manifest(resources).pipeline
    assert [m.config_path for m in pipeline.mutators] == ["package-context.yaml"]
    assert len(pipeline.validators) == 1


def test_clone_overwrites_info_and_applies_best_practices(store, catalog):
    source = store.get_revision("blueprints.billing-app.v1")
    assert can_clone_revision(source)

    request = RevisionRequest(
        package_name="billing-prod", target_repository="deployments", source=source,
        description="Production billing", keywords="", site="",
        selection=BestPracticesSelection(set_labels=True, part_of_label="payments"),
    )
    created = asyncio.run(RevisionAssembler(store, catalog).assemble(request))

    assert created.tasks[0].type == TaskType.CLONE
    resources = store.resources[created.name]
    manifest = load_root_manifest(resources)
    assert manifest.info.description == "Production billing"
    assert manifest.info.keywords is None
    assert [m.function_name for m in manifest.pipeline.mutators] == ["apply-replacements", "set-labels"]
    assert "set-labels.yaml" in resources
    # The upstream revision is untouched
    assert store.resources["blueprints.billing-app.v1"]["Kptfile"] == KPTFILE


def test_draft_revisions_cannot_be_cloned():
    store = InMemoryPackageStore()
    draft = store.seed("wip", ResourceMap({"Kptfile": KPTFILE}), lifecycle=Lifecycle.DRAFT)
    assert not can_clone_revision(draft)
    assert not can_clone_revision(None)


def test_update_manifest_info_keywords():
    resources = ResourceMap({"Kptfile": KPTFILE})
    updated = update_manifest_info(resources, "Desc", "a, b", "https://example.com")
    info = load_root_manifest(updated).info
    assert info.keywords == ("a", "b")
    assert info.site == "https://example.com"


def test_store_errors_propagate_unchanged(package, catalog):
    store = FailingReplaceStore()
    source = store.seed("upstream", package)
    request = RevisionRequest(package_name="copy", target_repository="deployments", source=source,
                              description="changed")
    with pytest.raises(ConnectionError):
        asyncio.run(RevisionAssembler(store, catalog).assemble(request))
    # The revision record survives without its updated resources
    assert "deployments.copy.v1" in store.revisions
    assert store.resources["deployments.copy.v1"] == package


def test_clone_of_unknown_source(catalog):
    store = InMemoryPackageStore()
    ghost = InMemoryPackageStore().seed("ghost", ResourceMap())
    request = RevisionRequest(package_name="copy", target_repository="deployments", source=ghost)
    with pytest.raises(RevisionNotFound):
        asyncio.run(RevisionAssembler(store, catalog).assemble(request))
