import pytest

from kubebundle.core.models import CatalogFunction
from kubebundle.resources.resource_map import ResourceMap
from kubebundle.synthesis.catalog import TransformCatalog

KPTFILE = """\
apiVersion: kpt.dev/v1
kind: Kptfile  # root manifest
metadata:
  name: billing-app
  annotations:
    config.kubernetes.io/local-config: "true"
info:
  description: Billing service
  keywords:
    - billing
pipeline:
  mutators:
    - image: gcr.io/kpt-fn/apply-replacements:v0.1.1
      configPath: replacements.yaml
"""

DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: billing-api
  namespace: billing
spec:
  template:
    spec:
      serviceAccountName: billing-sa
      containers:
        - name: api
          image: registry.example.com/billing/api:1.4.2
          env:
            - name: DB_PASSWORD
              valueFrom:
                secretKeyRef:
                  name: db-creds
                  key: password
            - name: MODE
              value: production
        - name: sidecar
          image: envoyproxy/envoy:v1.29
"""

NAMESPACE = """\
apiVersion: v1
kind: Namespace
metadata:
  name: billing
"""

WIDGET = """\
apiVersion: example.io/v1
kind: Widget
metadata:
  name: billing-widget
"""


def plain(data):
    """Strips ruamel round-trip types down to dicts, lists and scalars."""
    if isinstance(data, dict):
        return {str(k): plain(v) for k, v in data.items()}
    if isinstance(data, list):
        return [plain(v) for v in data]
    if isinstance(data, str):
        return str(data)
    return data


@pytest.fixture
def package():
    return ResourceMap({
        "Kptfile": KPTFILE,
        "deployment.yaml": DEPLOYMENT,
        "namespace.yaml": NAMESPACE,
        "widget.yaml": WIDGET,
        "README.md": "# Billing\n",
    })


@pytest.fixture
def bare_package():
    return ResourceMap({"Kptfile": "apiVersion: kpt.dev/v1\nkind: Kptfile\nmetadata:\n  name: bare\n"})


@pytest.fixture
def catalog():
    return TransformCatalog([
        CatalogFunction("set-namespace", "v0.3.4", "gcr.io/kpt-fn/set-namespace:v0.3.4"),
        CatalogFunction("set-namespace", "v0.4.1", "gcr.io/kpt-fn/set-namespace:v0.4.1"),
        CatalogFunction("set-labels", "v0.1.5", "gcr.io/kpt-fn/set-labels:v0.1.5"),
        CatalogFunction("kubeval", "v0.3.0", "gcr.io/kpt-fn/kubeval:v0.3.0"),
    ])
