"""Reading and validating bundle input files and bundle documents."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any

import yaml

from .bundle import SDKClients
from .models import Input, PackageBundle, PackageBundleSpec

log = logging.getLogger("BundleGenerator")

YAML_SEPARATOR = "\n---\n"
YYYYMMDD_FORMAT = "%Y-%m-%d"


class InputError(ValueError):
    """Raised when an input file or bundle cannot be read or is invalid."""


def _read_text(file_name: str | os.PathLike[str]) -> str:
    with open(os.path.normpath(os.fspath(file_name)), encoding="utf-8") as handle:
        return handle.read()


def _first_document(text: str) -> Any:
    """Return the first YAML document of ``text`` (None when empty)."""
    return next(iter(yaml.safe_load_all(text)), None)


def parse_input_config(file_name: str | os.PathLike[str]) -> Input:
    """Parse the first document of an input file, rejecting unknown fields."""
    try:
        content = _read_text(file_name)
    except OSError as exc:
        raise InputError(f"unable to read file due to: {exc}") from exc
    document = content.split(YAML_SEPARATOR)[0]
    try:
        data = _first_document(document)
    except yaml.YAMLError as exc:
        raise InputError(f"unable to parse {file_name}\nyaml: {document}\n {exc}") from exc
    try:
        return Input.from_dict(data)
    except ValueError as exc:
        raise InputError(f"unable to UnmarshalStrict {file_name}\nyaml: {document}\n {exc}") from exc


def validate_input_config_content(input_config: Input) -> None:
    """Raise InputError when the input lists no packages."""
    try:
        input_config.validate_not_empty()
    except ValueError as exc:
        raise InputError(str(exc)) from exc


def validate_input_config(file_name: str | os.PathLike[str]) -> Input:
    """Parse and validate an input file."""
    input_config = parse_input_config(file_name)
    validate_input_config_content(input_config)
    return input_config


def parse_bundle(file_name: str | os.PathLike[str]) -> PackageBundle:
    """Parse the first document of a package bundle file, rejecting unknown fields."""
    try:
        content = _read_text(file_name)
    except OSError as exc:
        raise InputError(f'reading package bundle file "{file_name}": {exc}') from exc
    document = content.split(YAML_SEPARATOR)[0]
    try:
        return PackageBundle.from_dict(_first_document(document))
    except (yaml.YAMLError, ValueError) as exc:
        raise InputError(f'unmarshaling package bundle from "{file_name}": {exc}') from exc


def validate_bundle_content(bundle: PackageBundle) -> None:
    """Raise InputError when the bundle lists no packages."""
    if not bundle.spec.packages:
        raise InputError("should use non-empty list of projects for input")


def validate_bundle(file_name: str | os.PathLike[str]) -> PackageBundle:
    """Parse and validate a package bundle file."""
    bundle = parse_bundle(file_name)
    validate_bundle_content(bundle)
    return bundle


def new_bundle_from_input(clients: SDKClients, input_config: Input) -> tuple[PackageBundleSpec, str]:
    """Build a bundle spec from ``input_config`` and return it with a generated bundle name."""
    if not input_config.name or not input_config.kubernetes_version:
        raise InputError("empty input field from `Name` or `KubernetesVersion`")

    now = datetime.now()
    version = input_config.kubernetes_version.split(".")
    if len(version) < 2:
        raise InputError(f"invalid kubernetesVersion {input_config.kubernetes_version!r}")
    name = f"v1-{version[1]}-{now.strftime(YYYYMMDD_FORMAT)}-{int(now.timestamp())}"

    spec = PackageBundleSpec()
    if input_config.min_version:
        spec.min_version = input_config.min_version
    for org in input_config.packages:
        for project in org.projects:
            try:
                package = clients.new_package_from_input(project)
            except Exception as exc:
                log.error("Unable to complete NewBundleFromInput from ecr lookup failure: %s", exc)
                raise
            spec.packages.append(package)
    return spec, name