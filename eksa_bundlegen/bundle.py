"""Building and serializing package bundles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import yaml

from .ecr import EcrClient, StsClient
from .models import (
    BundlePackage,
    BundlePackageSource,
    ObjectMeta,
    PackageBundle,
    PackageBundleSpec,
    PACKAGE_NAMESPACE,
    Project,
    SourceVersion,
)

EKSA_DOMAIN = "eksa.aws.com"
SIGNATURE_ANNOTATION = "signature"
EXCLUDES_ANNOTATION = "excludes"
# Excludes .spec.packages[].source.registry and .spec.packages[].source.repository
EXCLUDES = "LnNwZWMucGFja2FnZXNbXS5zb3VyY2UucmVnaXN0cnkKLnNwZWMucGFja2FnZXNbXS5zb3VyY2UucmVwb3NpdG9yeQo="
FULL_SIGNATURE_ANNOTATION = f"{EKSA_DOMAIN}/{SIGNATURE_ANNOTATION}"
FULL_EXCLUDES_ANNOTATION = f"{EKSA_DOMAIN}/{EXCLUDES_ANNOTATION}"

_GENERATED_METADATA_FIELDS = ("creationTimestamp", "generation", "managedFields", "uid", "resourceVersion")
_SAMPLE_DIGEST = "sha256:da25f5fdff88c259bb2ce7c0f1e9edddaf102dc4fb9cf5159ad6b902b5194e66"


def _default_annotations() -> dict[str, str]:
    return {FULL_EXCLUDES_ANNOTATION: EXCLUDES}


@dataclass
class SDKClients:
    """The registry and identity clients used to build a bundle."""

    ecr_client: EcrClient
    sts_client: StsClient | None = None

    def new_package_from_input(self, project: Project) -> BundlePackage:
        """Build a bundle package with the digests of the project's tags."""
        versions: list[SourceVersion] = []
        if "amazonaws.com" in project.registry:
            versions = self.ecr_client.get_sha_for_inputs(project)
        if not versions:
            names = [tag.name for tag in project.versions]
            raise ValueError(f"unable to find SHA sum for given input tag {names}")
        return BundlePackage(
            name=project.name,
            workload_only=project.workload_only,
            source=BundlePackageSource(
                repository=project.repository,
                registry=project.registry,
                versions=versions,
            ),
        )


def new_bundle_generate(bundle_name: str) -> PackageBundle:
    """Return a sample bundle with a single placeholder package."""
    return PackageBundle(
        metadata=ObjectMeta(
            name=bundle_name,
            namespace=PACKAGE_NAMESPACE,
            annotations=_default_annotations(),
        ),
        spec=PackageBundleSpec(
            packages=[
                BundlePackage(
                    name="sample-package",
                    source=BundlePackageSource(
                        repository="sample-Repository",
                        versions=[SourceVersion(name="v0.0", digest=_SAMPLE_DIGEST)],
                    ),
                )
            ]
        ),
    )


def add_metadata(spec: PackageBundleSpec, name: str) -> PackageBundle:
    """Wrap ``spec`` in a bundle named ``name``, stamped with the current time."""
    return PackageBundle(
        metadata=ObjectMeta(
            name=name,
            namespace=PACKAGE_NAMESPACE,
            annotations=_default_annotations(),
            creation_timestamp=datetime.now(timezone.utc),
        ),
        spec=spec,
    )


def serialize_bundle(bundle: PackageBundle) -> bytes:
    """Render ``bundle`` as YAML without status and server-generated metadata."""
    raw = bundle.to_dict()
    raw.pop("status", None)
    metadata = raw.get("metadata", {})
    for key in _GENERATED_METADATA_FIELDS:
        metadata.pop(key, None)
    return yaml.safe_dump(raw, default_flow_style=False).encode("utf-8")