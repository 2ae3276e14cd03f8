"""Data types for bundle generation inputs, chart requirements and package bundles."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

PACKAGE_BUNDLE_KIND = "PackageBundle"
API_VERSION = "packages.eks.amazonaws.com/v1alpha1"
PACKAGE_NAMESPACE = "eksa-packages"
OCI_IMAGE_MANIFEST_MEDIA_TYPE = "application/vnd.oci.image.manifest.v1+json"

_IGNORED_METADATA_KEYS = frozenset(
    {
        "generateName",
        "selfLink",
        "uid",
        "resourceVersion",
        "generation",
        "deletionTimestamp",
        "deletionGracePeriodSeconds",
        "ownerReferences",
        "finalizers",
        "managedFields",
    }
)


# ---------------------------------------------------------------------------
# Strict decoding helpers
# ---------------------------------------------------------------------------


def _mapping(data: Any, where: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{where}: expected a mapping, got {type(data).__name__}")
    return data


def _strict(data: Mapping[str, Any], allowed: set[str] | frozenset[str], where: str) -> None:
    unknown = sorted(str(key) for key in data if key not in allowed)
    if unknown:
        raise ValueError(f'{where}: unknown field "{unknown[0]}"')


def _string(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{where}.{key}: expected a string, got {type(value).__name__}")
    return value


def _boolean(data: Mapping[str, Any], key: str, where: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{where}.{key}: expected a boolean, got {type(value).__name__}")
    return value


def _items(data: Mapping[str, Any], key: str, where: str, parse: Callable[[Any, str], Any]) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{where}.{key}: expected a list, got {type(value).__name__}")
    return [parse(item, f"{where}.{key}[{index}]") for index, item in enumerate(value)]


def _string_item(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _string_map(data: Mapping[str, Any], key: str, where: str) -> dict[str, str]:
    value = _mapping(data.get(key), f"{where}.{key}")
    return {str(k): _string_item(v, f"{where}.{key}.{k}") for k, v in value.items()}


def _parse_time(value: Any, where: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"{where}: invalid timestamp {value!r}") from exc
    else:
        raise ValueError(f"{where}: expected a timestamp, got {type(value).__name__}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _format_time(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------------------------------------------------------------------------
# Input file
# ---------------------------------------------------------------------------


@dataclass
class Tag:
    """A release tag requested for a project."""

    name: str = ""


@dataclass
class Project:
    """A project within an org, with the tags to look up."""

    name: str = ""
    registry: str = ""
    repository: str = ""
    versions: list[Tag] = field(default_factory=list)
    workload_only: bool = False

    def matches(self, tag: str) -> list[str]:
        """Return the requested version names equal to ``tag``."""
        return [version.name for version in self.versions if version.name == tag]


@dataclass
class Org:
    """An org holding a list of projects."""

    org: str = ""
    projects: list[Project] = field(default_factory=list)


def _tag_from(data: Any, where: str) -> Tag:
    data = _mapping(data, where)
    _strict(data, {"name"}, where)
    return Tag(name=_string(data, "name", where))


def _project_from(data: Any, where: str) -> Project:
    data = _mapping(data, where)
    _strict(data, {"name", "registry", "repository", "versions", "workloadonly"}, where)
    return Project(
        name=_string(data, "name", where),
        registry=_string(data, "registry", where),
        repository=_string(data, "repository", where),
        versions=_items(data, "versions", where, _tag_from),
        workload_only=_boolean(data, "workloadonly", where),
    )


def _org_from(data: Any, where: str) -> Org:
    data = _mapping(data, where)
    _strict(data, {"org", "projects"}, where)
    return Org(
        org=_string(data, "org", where),
        projects=_items(data, "projects", where, _project_from),
    )


@dataclass
class Input:
    """The bundle generation input file."""

    packages: list[Org] = field(default_factory=list)
    name: str = ""
    kubernetes_version: str = ""
    min_version: str = ""

    def validate_not_empty(self) -> None:
        """Raise ValueError when no packages are listed."""
        if not self.packages:
            raise ValueError("should use non-empty list of projects for input")

    @classmethod
    def from_dict(cls, data: Any) -> Input:
        """Build an Input from decoded YAML, rejecting unknown fields."""
        where = "input"
        data = _mapping(data, where)
        _strict(data, {"packages", "name", "kubernetesVersion", "minControllerVersion"}, where)
        return cls(
            packages=_items(data, "packages", where, _org_from),
            name=_string(data, "name", where),
            kubernetes_version=_string(data, "kubernetesVersion", where),
            min_version=_string(data, "minControllerVersion", where),
        )


# ---------------------------------------------------------------------------
# Object metadata
# ---------------------------------------------------------------------------


@dataclass
class ObjectMeta:
    """The subset of Kubernetes object metadata that bundles carry."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    creation_timestamp: datetime | None = None


def _meta_from(data: Any, where: str) -> ObjectMeta:
    data = _mapping(data, where)
    allowed = {"name", "namespace", "labels", "annotations", "creationTimestamp"} | _IGNORED_METADATA_KEYS
    _strict(data, allowed, where)
    return ObjectMeta(
        name=_string(data, "name", where),
        namespace=_string(data, "namespace", where),
        labels=_string_map(data, "labels", where),
        annotations=_string_map(data, "annotations", where),
        creation_timestamp=_parse_time(data.get("creationTimestamp"), f"{where}.creationTimestamp"),
    )


def _meta_to_dict(meta: ObjectMeta) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if meta.name:
        out["name"] = meta.name
    if meta.namespace:
        out["namespace"] = meta.namespace
    out["creationTimestamp"] = _format_time(meta.creation_timestamp)
    if meta.labels:
        out["labels"] = dict(meta.labels)
    if meta.annotations:
        out["annotations"] = dict(meta.annotations)
    return out


# ---------------------------------------------------------------------------
# Chart requirements (requires.yaml)
# ---------------------------------------------------------------------------


@dataclass
class Image:
    """An image a chart requires."""

    repository: str = ""
    tag: str = ""
    digest: str = ""


@dataclass
class Configuration:
    """A configuration value a chart accepts."""

    name: str = ""
    required: bool = False
    default: str = ""


@dataclass
class RequiresSpec:
    """The body of a chart's requires.yaml."""

    images: list[Image] = field(default_factory=list)
    configurations: list[Configuration] = field(default_factory=list)
    schema: str = ""
    dependencies: list[str] = field(default_factory=list)


def _image_from(data: Any, where: str) -> Image:
    data = _mapping(data, where)
    _strict(data, {"repository", "tag", "digest"}, where)
    return Image(
        repository=_string(data, "repository", where),
        tag=_string(data, "tag", where),
        digest=_string(data, "digest", where),
    )


def _configuration_from(data: Any, where: str) -> Configuration:
    data = _mapping(data, where)
    _strict(data, {"name", "required", "default"}, where)
    return Configuration(
        name=_string(data, "name", where),
        required=_boolean(data, "required", where),
        default=_string(data, "default", where),
    )


def _requires_spec_from(data: Any, where: str) -> RequiresSpec:
    data = _mapping(data, where)
    _strict(data, {"images", "configurations", "schema", "dependencies"}, where)
    return RequiresSpec(
        images=_items(data, "images", where, _image_from),
        configurations=_items(data, "configurations", where, _configuration_from),
        schema=_string(data, "schema", where),
        dependencies=_items(data, "dependencies", where, _string_item),
    )


@dataclass
class Requires:
    """A chart's requires.yaml document."""

    kind: str = ""
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: RequiresSpec = field(default_factory=RequiresSpec)

    def validate_not_empty(self) -> None:
        """Raise ValueError when no images are listed."""
        if not self.spec.images:
            raise ValueError("should use non-empty list of images for requires")

    @classmethod
    def from_dict(cls, data: Any) -> Requires:
        """Build a Requires from decoded YAML, rejecting unknown fields."""
        where = "requires"
        data = _mapping(data, where)
        _strict(data, {"kind", "metadata", "spec"}, where)
        return cls(
            kind=_string(data, "kind", where),
            metadata=_meta_from(data.get("metadata"), f"{where}.metadata"),
            spec=_requires_spec_from(data.get("spec"), f"{where}.spec"),
        )


# ---------------------------------------------------------------------------
# Docker auth
# ---------------------------------------------------------------------------


@dataclass
class DockerAuthRegistry:
    """Credentials for a single registry."""

    auth: str = ""


@dataclass
class DockerAuth:
    """A docker config.json style credentials document."""

    auths: dict[str, DockerAuthRegistry] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of the document."""
        if not self.auths:
            return {}
        return {"auths": {host: {"auth": entry.auth} for host, entry in self.auths.items()}}


# ---------------------------------------------------------------------------
# Package bundle
# ---------------------------------------------------------------------------


@dataclass
class VersionImages:
    """An image referenced by a package version."""

    repository: str = ""
    digest: str = ""


@dataclass
class SourceVersion:
    """A named, digest-pinned version of a package."""

    name: str = ""
    digest: str = ""
    images: list[VersionImages] = field(default_factory=list)
    schema: str = ""
    dependencies: list[str] = field(default_factory=list)


@dataclass
class BundlePackageSource:
    """Where a package's artifacts live."""

    registry: str = ""
    repository: str = ""
    versions: list[SourceVersion] = field(default_factory=list)


@dataclass
class BundlePackage:
    """A package listed in a bundle."""

    name: str = ""
    workload_only: bool = False
    source: BundlePackageSource = field(default_factory=BundlePackageSource)


@dataclass
class PackageBundleSpec:
    """The packages of a bundle and the controller version it needs."""

    packages: list[BundlePackage] = field(default_factory=list)
    min_version: str = ""


def _version_images_from(data: Any, where: str) -> VersionImages:
    data = _mapping(data, where)
    _strict(data, {"repository", "digest"}, where)
    return VersionImages(
        repository=_string(data, "repository", where),
        digest=_string(data, "digest", where),
    )


def _source_version_from(data: Any, where: str) -> SourceVersion:
    data = _mapping(data, where)
    _strict(data, {"name", "digest", "images", "schema", "dependencies"}, where)
    return SourceVersion(
        name=_string(data, "name", where),
        digest=_string(data, "digest", where),
        images=_items(data, "images", where, _version_images_from),
        schema=_string(data, "schema", where),
        dependencies=_items(data, "dependencies", where, _string_item),
    )


def _source_from(data: Any, where: str) -> BundlePackageSource:
    data = _mapping(data, where)
    _strict(data, {"registry", "repository", "versions"}, where)
    return BundlePackageSource(
        registry=_string(data, "registry", where),
        repository=_string(data, "repository", where),
        versions=_items(data, "versions", where, _source_version_from),
    )


def _bundle_package_from(data: Any, where: str) -> BundlePackage:
    data = _mapping(data, where)
    _strict(data, {"name", "workloadonly", "source"}, where)
    return BundlePackage(
        name=_string(data, "name", where),
        workload_only=_boolean(data, "workloadonly", where),
        source=_source_from(data.get("source"), f"{where}.source"),
    )


def _spec_from(data: Any, where: str) -> PackageBundleSpec:
    data = _mapping(data, where)
    _strict(data, {"packages", "minControllerVersion"}, where)
    return PackageBundleSpec(
        packages=_items(data, "packages", where, _bundle_package_from),
        min_version=_string(data, "minControllerVersion", where),
    )


def _version_to_dict(version: SourceVersion) -> dict[str, Any]:
    out: dict[str, Any] = {"name": version.name, "digest": version.digest}
    if version.images:
        out["images"] = [{"repository": i.repository, "digest": i.digest} for i in version.images]
    if version.schema:
        out["schema"] = version.schema
    if version.dependencies:
        out["dependencies"] = list(version.dependencies)
    return out


def _package_to_dict(package: BundlePackage) -> dict[str, Any]:
    source: dict[str, Any] = {}
    if package.source.registry:
        source["registry"] = package.source.registry
    source["repository"] = package.source.repository
    source["versions"] = [_version_to_dict(v) for v in package.source.versions]
    out: dict[str, Any] = {}
    if package.name:
        out["name"] = package.name
    if package.workload_only:
        out["workloadonly"] = True
    out["source"] = source
    return out


def _spec_to_dict(spec: PackageBundleSpec) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if spec.packages:
        out["packages"] = [_package_to_dict(p) for p in spec.packages]
    if spec.min_version:
        out["minControllerVersion"] = spec.min_version
    return out


@dataclass
class PackageBundle:
    """A PackageBundle resource."""

    kind: str = PACKAGE_BUNDLE_KIND
    api_version: str = API_VERSION
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: PackageBundleSpec = field(default_factory=PackageBundleSpec)

    @property
    def annotations(self) -> dict[str, str]:
        """The metadata annotations, editable in place."""
        return self.metadata.annotations

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of the resource."""
        out: dict[str, Any] = {}
        if self.kind:
            out["kind"] = self.kind
        if self.api_version:
            out["apiVersion"] = self.api_version
        out["metadata"] = _meta_to_dict(self.metadata)
        out["spec"] = _spec_to_dict(self.spec)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> PackageBundle:
        """Build a bundle from decoded YAML, rejecting unknown fields."""
        where = "bundle"
        data = _mapping(data, where)
        _strict(data, {"kind", "apiVersion", "metadata", "spec", "status"}, where)
        return cls(
            kind=_string(data, "kind", where),
            api_version=_string(data, "apiVersion", where),
            metadata=_meta_from(data.get("metadata"), f"{where}.metadata"),
            spec=_spec_from(data.get("spec"), f"{where}.spec"),
        )


# ---------------------------------------------------------------------------
# Registry results
# ---------------------------------------------------------------------------


@dataclass
class ImageDetail:
    """One image as described by a container registry."""

    image_digest: str | None = None
    image_tags: list[str] = field(default_factory=list)
    image_manifest_media_type: str | None = None
    image_pushed_at: datetime | None = None
    registry_id: str | None = None
    repository_name: str | None = None