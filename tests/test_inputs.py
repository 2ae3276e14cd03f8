import re
from datetime import datetime, timezone

import pytest

from eksa_bundlegen.bundle import SDKClients, new_bundle_generate, serialize_bundle
from eksa_bundlegen.ecr import DescribeImagesResponse, EcrClient
from eksa_bundlegen.inputs import (
    InputError,
    new_bundle_from_input,
    parse_bundle,
    parse_input_config,
    validate_bundle,
    validate_bundle_content,
    validate_input_config,
    validate_input_config_content,
)
from eksa_bundlegen.models import (
    OCI_IMAGE_MANIFEST_MEDIA_TYPE,
    ImageDetail,
    Input,
    Org,
    PackageBundle,
    Project,
    Tag,
)

SHA = "sha256:d5467083c4d175e7e9bba823e95570d28fff86a2fbccb03f5ec3093db6f039be"
REGISTRY = "000000000000.dkr.ecr.us-west-2.amazonaws.com"

INPUT_YAML = f"""name: test-bundle
kubernetesVersion: "1.29"
minControllerVersion: v0.2.0
packages:
- org: aws-containers
  projects:
  - name: hello-eks-anywhere
    registry: {REGISTRY}
    repository: hello-eks-anywhere
    versions:
    - name: v0.1.0
"""


class FakeRegistry:
    def describe_images(self, request):
        return DescribeImagesResponse(
            image_details=[
                ImageDetail(
                    image_digest=SHA,
                    image_tags=["v0.1.0"],
                    image_manifest_media_type=OCI_IMAGE_MANIFEST_MEDIA_TYPE,
                    image_pushed_at=datetime.now(timezone.utc),
                )
            ]
        )

    def get_authorization_token(self):
        return ["token"]


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_parse_input_config_reads_fields(tmp_path):
    config = parse_input_config(_write(tmp_path, "input.yaml", INPUT_YAML))
    assert config.name == "test-bundle"
    assert config.kubernetes_version == "1.29"
    assert config.min_version == "v0.2.0"
    project = config.packages[0].projects[0]
    assert project.registry == REGISTRY
    assert [tag.name for tag in project.versions] == ["v0.1.0"]


def test_parse_input_config_uses_first_document_only(tmp_path):
    text = INPUT_YAML + "\n---\nname: other\nbogus: true\n"
    config = parse_input_config(_write(tmp_path, "input.yaml", text))
    assert config.name == "test-bundle"


def test_parse_input_config_rejects_unknown_field(tmp_path):
    path = _write(tmp_path, "input.yaml", INPUT_YAML + "unexpected: 1\n")
    with pytest.raises(InputError, match="unable to UnmarshalStrict"):
        parse_input_config(path)


def test_parse_input_config_missing_file(tmp_path):
    with pytest.raises(InputError, match="unable to read file due to"):
        parse_input_config(str(tmp_path / "missing.yaml"))


def test_parse_input_config_bad_yaml(tmp_path):
    path = _write(tmp_path, "input.yaml", "name: [unclosed\n")
    with pytest.raises(InputError, match="unable to parse"):
        parse_input_config(path)


def test_validate_input_config_requires_packages(tmp_path):
    path = _write(tmp_path, "input.yaml", "name: x\nkubernetesVersion: '1.29'\n")
    with pytest.raises(InputError, match="should use non-empty list of projects for input"):
        validate_input_config(path)


def test_validate_input_config_returns_config(tmp_path):
    config = validate_input_config(_write(tmp_path, "input.yaml", INPUT_YAML))
    assert len(config.packages) == 1


def test_validate_input_config_content_empty():
    with pytest.raises(InputError):
        validate_input_config_content(Input())


def test_parse_bundle_round_trip(tmp_path):
    bundle = new_bundle_generate("roundtrip")
    path = tmp_path / "bundle.yaml"
    path.write_bytes(serialize_bundle(bundle))
    parsed = parse_bundle(str(path))
    assert parsed.metadata.name == "roundtrip"
    assert parsed.metadata.annotations == bundle.metadata.annotations
    assert parsed.spec == bundle.spec
    assert validate_bundle(str(path)).spec == bundle.spec


def test_parse_bundle_rejects_unknown_field(tmp_path):
    path = _write(tmp_path, "bundle.yaml", "kind: PackageBundle\nextra: 1\n")
    with pytest.raises(InputError, match="unmarshaling package bundle from"):
        parse_bundle(path)


def test_parse_bundle_missing_file(tmp_path):
    with pytest.raises(InputError, match="reading package bundle file"):
        parse_bundle(str(tmp_path / "nope.yaml"))


def test_validate_bundle_requires_packages(tmp_path):
    path = _write(tmp_path, "bundle.yaml", "kind: PackageBundle\nmetadata:\n  name: x\n")
    with pytest.raises(InputError, match="should use non-empty list of projects for input"):
        validate_bundle(path)
    with pytest.raises(InputError):
        validate_bundle_content(PackageBundle())


def test_new_bundle_from_input_builds_spec_and_name(tmp_path):
    config = parse_input_config(_write(tmp_path, "input.yaml", INPUT_YAML))
    clients = SDKClients(ecr_client=EcrClient(FakeRegistry()))
    spec, name = new_bundle_from_input(clients, config)
    assert re.fullmatch(r"v1-29-\d{4}-\d{2}-\d{2}-\d+", name)
    assert spec.min_version == "v0.2.0"
    assert [p.name for p in spec.packages] == ["hello-eks-anywhere"]
    assert spec.packages[0].source.versions[0].digest == SHA


def test_new_bundle_from_input_requires_name():
    clients = SDKClients(ecr_client=EcrClient(FakeRegistry()))
    with pytest.raises(InputError, match="empty input field"):
        new_bundle_from_input(clients, Input(kubernetes_version="1.29"))


def test_new_bundle_from_input_propagates_lookup_failure():
    clients = SDKClients(ecr_client=EcrClient(FakeRegistry()))
    config = Input(
        name="x",
        kubernetes_version="1.29",
        packages=[Org(projects=[Project(name="p", registry="example.com", versions=[Tag("v1")])])],
    )
    with pytest.raises(ValueError, match="unable to find SHA sum"):
        new_bundle_from_input(clients, config)