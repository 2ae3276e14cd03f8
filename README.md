# eksa-bundlegen

A library for building package bundle manifests. It reads an input file that
lists projects and the image tags wanted, resolves each tag to an image digest
through a registry client you supply, unpacks a Helm chart archive and reads
its `requires.yaml`, and renders the resulting `PackageBundle` as YAML.

## Modules

- **`eksa_bundlegen.models`** – dataclasses for the input file (`Input`,
  `Org`, `Project`, `Tag`), chart requirements (`Requires`, `RequiresSpec`,
  `Image`, `Configuration`), bundles (`PackageBundle`, `PackageBundleSpec`,
  `BundlePackage`, `BundlePackageSource`, `SourceVersion`, `VersionImages`,
  `ObjectMeta`), registry credentials (`DockerAuth`, `DockerAuthRegistry`)
  and registry listings (`ImageDetail`). `Input.from_dict`,
  `Requires.from_dict` and `PackageBundle.from_dict` reject unknown fields
  with `ValueError`; `PackageBundle.to_dict` and `DockerAuth.to_dict` give the
  JSON-ready form. `Project.matches(tag)` returns the requested version names
  equal to `tag`.
- **`eksa_bundlegen.inputs`** – `parse_input_config`, `validate_input_config`,
  `parse_bundle`, `validate_bundle` and their `*_content` checks, which read
  the first YAML document of a file and raise `InputError` on a read, parse or
  validation failure. `new_bundle_from_input(clients, input_config)` returns a
  `PackageBundleSpec` and a generated name of the form
  `v1-<minor>-<YYYY-MM-DD>-<epoch seconds>`.
- **`eksa_bundlegen.ecr`** – `EcrClient` wraps any object implementing the
  `RegistryClient` protocol (`describe_images`, `get_authorization_token`).
  `get_sha_for_inputs(project)` resolves each tag:
  - a tag not ending in `latest` is looked up directly, keeping OCI image
    manifests that carry tags;
  - `latest` picks the most recently pushed OCI image with `latest` in a tag;
  - `<version>-latest` picks the most recently pushed OCI image with a tag that
    starts with `<version>` and contains `latest`.

  Versions with a repeated name keep only the first. `tag_from_sha` finds the
  tag of an image by digest. `StsClient` records the caller's account id;
  `new_auth_file` writes a `DockerAuth` to a temporary JSON file and returns a
  `DockerAuthFile` whose `remove()` deletes it. Failures raise `EcrError`.
- **`eksa_bundlegen.bundle`** – `SDKClients.new_package_from_input` (lookups
  happen only for registries containing `amazonaws.com`; no digests found
  raises `ValueError`), `new_bundle_generate` for a sample bundle,
  `add_metadata` to wrap a spec with a name, namespace, excludes annotation
  and the current time, and `serialize_bundle`, which renders YAML without
  `status` or server-generated metadata such as `creationTimestamp`.
- **`eksa_bundlegen.helm`** – `untar_helm_chart(chart_ref, chart_path, dest)`
  expands a `.tgz` chart archive into `dest/<chart name>`; `has_requires`,
  `parse_helm_requires` and `validate_helm_requires` locate and check a
  chart's `requires.yaml` (it must list at least one image). Failures raise
  `HelmError`.
- **`eksa_bundlegen.filewriter`** – `FileWriter` writes files into a
  directory (creating its `generated` subfolder), with `with_dir` and
  `clean_up`; `concat_yaml_resources` joins YAML documents behind a leading
  `---` separator.
- **`eksa_bundlegen.options`** – `parse_options(argv)` builds an `Options`
  from `--input`, `--output` (default `output`), `--key` (default `k`),
  `--bundle` and `--generate-sample`; `Options.validate_input()` returns the
  input file, or every `.yaml` under the working directory found by
  `get_yaml_files`, skipping paths containing `output/`.
- **`eksa_bundlegen.authenticator`** – `EcrSecret`, an `Authenticator`
  working against any `KubeClient`. It keeps the comma-separated name list per
  namespace in the `ns-secret-map` config map, returns the `ecr-token` and
  `registry-mirror-cred` image pull secrets, reads `HELM_REGISTRY_CONFIG` for
  the auth file path, and, unless the `cron-ecr-renew` cron job is suspended,
  starts a refresh job from its template and deletes earlier controller-made
  jobs that have succeeded. Missing objects surface as `NotFoundError` from the
  client.

## Example

```python
from eksa_bundlegen.bundle import new_bundle_generate, serialize_bundle
from eksa_bundlegen.filewriter import FileWriter

bundle = new_bundle_generate("generatesample")
writer = FileWriter("output")
path = writer.write("bundle.yaml", serialize_bundle(bundle), 0o644)
print(path)
```

Resolving an input file needs a registry client object with
`describe_images` and `get_authorization_token` methods:

```python
from eksa_bundlegen.bundle import SDKClients, add_metadata, serialize_bundle
from eksa_bundlegen.ecr import EcrClient
from eksa_bundlegen.inputs import new_bundle_from_input, validate_input_config

config = validate_input_config("input.yaml")
clients = SDKClients(ecr_client=EcrClient(my_registry_client, False))
spec, name = new_bundle_from_input(clients, config)
print(serialize_bundle(add_metadata(spec, name)).decode())
```

## What it does not do

- There is no command-line program; `parse_options` only parses arguments,
  and the steps are put together by your own code.
- It does not sign bundles. The signature annotation name is defined in
  `eksa_bundlegen.bundle`, but producing a signature is left to you.
- It does not pull charts from a registry; `untar_helm_chart` works on an
  archive already on disk.
- It ships no registry, identity or cluster clients. `EcrClient`, `StsClient`
  and `EcrSecret` work with objects you provide that implement the protocols
  described above.

## Running the tests

The test suite uses pytest and is listed under the `test` extra.