import pytest

from conftest import KPTFILE
from kubebundle.core.models import CRDRequirement, ImageRequirement, RequirementType, ResourceRequirement
from kubebundle.dependencies.extractor import DependencyExtractor, extract_requirements, summarize, unfulfilled
from kubebundle.resources.resource_map import ResourceMap


def _requires(results, kind):
    return [r for result in results if result.document.kind == kind for r in result.requires]


def test_deployment_secret_service_account_and_images(package):
    requires = _requires(extract_requirements(package), "Deployment")

    assert [r.message() for r in requires] == [
        "Namespace billing expected",
        "Secret db-creds expected",
        "Image registry.example.com/billing/api:1.4.2 must exist",
        "Image envoyproxy/envoy:v1.29 must exist",
        "ServiceAccount billing-sa expected",
    ]
    assert requires[1].namespace == "billing"
    assert requires[4].namespace == "billing"
    assert [r.fulfilled for r in requires] == [True, None, None, None, None]


def test_secret_ref_law():
    """A secretKeyRef named db-creds in namespace billing requires that Secret."""
    results = extract_requirements(ResourceMap({
        "deploy.yaml": (
            "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: d\n  namespace: billing\n"
            "spec:\n  template:\n    spec:\n      containers:\n        - name: c\n"
            "          env:\n            - name: X\n              valueFrom:\n"
            "                secretKeyRef:\n                  name: db-creds\n"
        ),
    }))
    assert ResourceRequirement(kind="Secret", name="db-creds", namespace="billing") in results[0].requires


def test_namespace_requirement_iff_namespace_set(package):
    for result in extract_requirements(package):
        has_ns_req = any(isinstance(r, ResourceRequirement) and r.kind == "Namespace" for r in result.requires)
        assert has_ns_req == bool(result.document.namespace)


def test_namespace_unfulfilled_without_namespace_document(package):
    results = extract_requirements(package.remove("namespace.yaml"))
    namespace_req = _requires(results, "Deployment")[0]
    assert namespace_req.kind == "Namespace"
    assert namespace_req.fulfilled is None


def test_fulfillment_matches_kind_and_name_only(package):
    secret = "apiVersion: v1\nkind: Secret\nmetadata:\n  name: db-creds\n  namespace: elsewhere\n"
    results = extract_requirements(package.add(secret, "secret.yaml"))
    secret_req = [r for r in _requires(results, "Deployment")
                  if isinstance(r, ResourceRequirement) and r.kind == "Secret"][0]
    assert secret_req.fulfilled is True


def test_crd_exclusion(package):
    results = extract_requirements(package)
    assert not any(isinstance(r, CRDRequirement) for r in _requires(results, "Deployment"))
    assert _requires(results, "Widget") == [CRDRequirement(group_version_kind="example.io/v1/Widget")]


@pytest.mark.parametrize("api_version, expected", [
    ("v1", False),
    ("apps/v1", False),
    ("rbac.authorization.k8s.io/v1", False),
    ("networking.k8s.io/v1", True),
    ("example.io/v1", True),
])
def test_custom_type_rule(api_version, expected):
    resources = ResourceMap({"r.yaml": f"apiVersion: {api_version}\nkind: Thing\nmetadata:\n  name: t\n"})
    requires = extract_requirements(resources)[0].requires
    assert any(isinstance(r, CRDRequirement) for r in requires) is expected


def test_local_config_never_needs_a_crd():
    resources = ResourceMap({
        "Kptfile": KPTFILE,
        "fn.yaml": "apiVersion: fn.kpt.dev/v1alpha1\nkind: SetLabels\nmetadata:\n  name: x\n"
                   "  annotations:\n    config.kubernetes.io/local-config: \"true\"\n",
    })
    assert all(not r.requires for r in extract_requirements(resources))


def test_malformed_deployment_yields_no_workload_requirements():
    resources = ResourceMap({
        "d.yaml": "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: d\nspec:\n  template: oops\n",
        "e.yaml": "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: e\n"
                  "spec:\n  template:\n    spec:\n      containers: 3\n",
    })
    assert [r.requires for r in extract_requirements(resources)] == [[], []]


def test_malformed_env_still_lists_the_image():
    resources = ResourceMap({
        "d.yaml": "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: d\n"
                  "spec:\n  template:\n    spec:\n      containers:\n        - image: x\n          env: 7\n",
    })
    assert extract_requirements(resources)[0].requires == [ImageRequirement(image="x")]


def test_kptfile_needs_its_crd_unless_annotated():
    bare = ResourceMap({"Kptfile": "apiVersion: kpt.dev/v1\nkind: Kptfile\nmetadata:\n  name: x\n"})
    assert extract_requirements(bare)[0].requires == [CRDRequirement(group_version_kind="kpt.dev/v1/Kptfile")]
    assert extract_requirements(ResourceMap({"Kptfile": KPTFILE}))[0].requires == []


def test_extraction_is_deterministic(package):
    first = extract_requirements(package)
    second = DependencyExtractor().extract(package)
    assert [(r.document, r.requires) for r in first] == [(r.document, r.requires) for r in second]


def test_crd_and_image_requirements_stay_open(package):
    open_reqs = unfulfilled(extract_requirements(package))
    types = {r.type for r in open_reqs}
    assert RequirementType.CRD in types and RequirementType.IMAGE in types
    assert all(r.fulfilled is None for r in open_reqs if r.type != RequirementType.RESOURCE)


def test_messages():
    assert ResourceRequirement(kind="Secret", name="db-creds").message() == "Secret db-creds expected"
    assert CRDRequirement(group_version_kind="example.io/v1/Widget").message() == \
        "CRD example.io/v1/Widget must be installed"
    assert ImageRequirement(image="nginx:1.25").message() == "Image nginx:1.25 must exist"


def test_summary(package):
    summary = summarize(extract_requirements(package))
    assert summary["documents"] == 4
    assert summary["total"] == 6
    assert summary["resource"] == 3
    assert summary["crd"] == 1
    assert summary["image"] == 2
    assert summary["fulfilled"] == 1
    assert summary["open"] == 5
