from datetime import datetime, timezone

import pytest

from eksa_bundlegen.models import (
    API_VERSION,
    PACKAGE_BUNDLE_KIND,
    PACKAGE_NAMESPACE,
    BundlePackage,
    BundlePackageSource,
    DockerAuth,
    DockerAuthRegistry,
    Image,
    Input,
    ObjectMeta,
    Org,
    PackageBundle,
    PackageBundleSpec,
    Project,
    Requires,
    RequiresSpec,
    SourceVersion,
    Tag,
    VersionImages,
)


def test_project_matches_returns_every_equal_tag():
    project = Project(versions=[Tag("v1"), Tag("v2"), Tag("v1")])
    assert project.matches("v1") == ["v1", "v1"]
    assert project.matches("v3") == []


def test_input_validate_not_empty_raises():
    with pytest.raises(ValueError, match="non-empty list of projects"):
        Input().validate_not_empty()


def test_input_validate_not_empty_accepts_packages():
    config = Input(packages=[Org(org="o")])
    config.validate_not_empty()
    assert len(config.packages) == 1


def test_input_from_dict_reads_all_fields():
    data = {
        "name": "bundle",
        "kubernetesVersion": "1.27",
        "minControllerVersion": "v0.2.0",
        "packages": [
            {
                "org": "aws",
                "projects": [
                    {
                        "name": "hello-eks-anywhere",
                        "registry": "registry.example.com",
                        "repository": "hello-eks-anywhere",
                        "versions": [{"name": "latest"}],
                        "workloadonly": True,
                    }
                ],
            }
        ],
    }
    config = Input.from_dict(data)
    assert config.name == "bundle"
    assert config.kubernetes_version == "1.27"
    assert config.min_version == "v0.2.0"
    project = config.packages[0].projects[0]
    assert project == Project(
        name="hello-eks-anywhere",
        registry="registry.example.com",
        repository="hello-eks-anywhere",
        versions=[Tag("latest")],
        workload_only=True,
    )


def test_input_from_dict_rejects_unknown_field():
    with pytest.raises(ValueError, match="unknown field"):
        Input.from_dict({"name": "x", "bogus": 1})


def test_input_from_dict_rejects_wrong_type():
    with pytest.raises(ValueError):
        Input.from_dict({"name": ["not", "a", "string"]})


def test_input_from_none_is_empty():
    assert Input.from_dict(None) == Input()


def test_requires_from_dict_and_validation():
    requires = Requires.from_dict(
        {
            "kind": "Requires",
            "metadata": {"name": "hello"},
            "spec": {
                "images": [{"repository": "repo", "tag": "v1", "digest": "sha256:abc"}],
                "dependencies": ["dep"],
                "schema": "e30=",
            },
        }
    )
    assert requires.spec.images == [Image(repository="repo", tag="v1", digest="sha256:abc")]
    assert requires.spec.dependencies == ["dep"]
    assert requires.metadata.name == "hello"
    requires.validate_not_empty()


def test_requires_without_images_fails_validation():
    with pytest.raises(ValueError, match="non-empty list of images"):
        Requires(spec=RequiresSpec()).validate_not_empty()


def test_docker_auth_to_dict():
    auth = DockerAuth(auths={"registry.example.com": DockerAuthRegistry(auth="token")})
    assert auth.to_dict() == {"auths": {"registry.example.com": {"auth": "token"}}}


def test_empty_docker_auth_omits_auths():
    assert "auths" not in DockerAuth().to_dict()


def _sample_bundle():
    return PackageBundle(
        metadata=ObjectMeta(
            name="bundle",
            namespace=PACKAGE_NAMESPACE,
            annotations={"eksa.aws.com/excludes": "abc"},
            creation_timestamp=datetime(2023, 5, 1, 12, 30, tzinfo=timezone.utc),
        ),
        spec=PackageBundleSpec(
            min_version="v0.1.0",
            packages=[
                BundlePackage(
                    name="hello",
                    workload_only=True,
                    source=BundlePackageSource(
                        registry="registry.example.com",
                        repository="hello",
                        versions=[
                            SourceVersion(
                                name="v1",
                                digest="sha256:abc",
                                images=[VersionImages(repository="img", digest="sha256:def")],
                                schema="e30=",
                                dependencies=["dep"],
                            )
                        ],
                    ),
                )
            ],
        ),
    )


def test_package_bundle_round_trip():
    bundle = _sample_bundle()
    assert PackageBundle.from_dict(bundle.to_dict()) == bundle


def test_package_bundle_to_dict_type_meta():
    data = _sample_bundle().to_dict()
    assert data["kind"] == PACKAGE_BUNDLE_KIND == "PackageBundle"
    assert data["apiVersion"] == API_VERSION == "packages.eks.amazonaws.com/v1alpha1"
    assert data["metadata"]["namespace"] == "eksa-packages"


def test_zero_timestamp_serializes_as_null():
    data = PackageBundle(metadata=ObjectMeta(name="b")).to_dict()
    assert data["metadata"]["creationTimestamp"] is None


def test_package_bundle_from_dict_accepts_status_and_datetime():
    moment = datetime(2022, 1, 2, 3, 4, 5)
    bundle = PackageBundle.from_dict(
        {"kind": "PackageBundle", "metadata": {"creationTimestamp": moment}, "status": {"state": "x"}}
    )
    assert bundle.metadata.creation_timestamp == moment.replace(tzinfo=timezone.utc)


def test_package_bundle_from_dict_rejects_unknown_spec_field():
    with pytest.raises(ValueError, match="unknown field"):
        PackageBundle.from_dict({"spec": {"other": 1}})


def test_annotations_property_is_live():
    bundle = PackageBundle()
    bundle.annotations["k"] = "v"
    assert bundle.metadata.annotations == {"k": "v"}