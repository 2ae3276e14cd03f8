"""Unpacking Helm chart archives and reading their requires.yaml."""

from __future__ import annotations

import errno
import os
import posixpath
import tarfile

import yaml

from .inputs import YAML_SEPARATOR
from .models import Requires


class HelmError(Exception):
    """Raised when a chart cannot be unpacked or its requirements are invalid."""


def _clamp(relative: str) -> str:
    """Normalise ``relative`` so it cannot leave the directory it is joined to."""
    return posixpath.normpath("/" + relative.replace("\\", "/")).lstrip("/")


def _load_archive_files(archive: str) -> list[tuple[str, bytes]]:
    files: list[tuple[str, bytes]] = []
    try:
        with tarfile.open(archive, "r:gz") as tar:
            for member in tar:
                if not member.isfile():
                    continue
                parts = member.name.replace("\\", "/").split("/", 1)
                if len(parts) < 2:
                    if parts[0] == "Chart.yaml":
                        raise HelmError("chart yaml not in base directory")
                    continue
                if not parts[1]:
                    continue
                extracted = tar.extractfile(member)
                data = extracted.read() if extracted is not None else b""
                files.append((parts[1], data))
    except (OSError, tarfile.TarError, EOFError) as exc:
        raise HelmError(f"reading chart archive {archive}: {exc}") from exc
    return files


def _expand_file(dest: str, archive: str) -> None:
    files = _load_archive_files(archive)
    chart_name = ""
    for name, data in files:
        if name == "Chart.yaml":
            try:
                metadata = yaml.safe_load(data) or {}
            except yaml.YAMLError as exc:
                raise HelmError(f"parsing Chart.yaml: {exc}") from exc
            if isinstance(metadata, dict) and isinstance(metadata.get("name"), str):
                chart_name = metadata["name"]
    if not chart_name:
        raise HelmError("chart name not specified")

    chart_dir = os.path.join(dest, _clamp(chart_name))
    try:
        os.makedirs(dest, mode=0o755, exist_ok=True)
        for name, data in files:
            out_path = os.path.join(chart_dir, _clamp(name))
            os.makedirs(os.path.dirname(out_path), mode=0o755, exist_ok=True)
            fd = os.open(out_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
    except OSError as exc:
        raise HelmError(f"expanding chart into {dest}: {exc}") from exc


def untar_helm_chart(
    chart_ref: str | os.PathLike[str],
    chart_path: str | os.PathLike[str],
    dest: str | os.PathLike[str],
) -> None:
    """Unpack the chart archive ``chart_ref`` into ``dest``."""
    chart_ref, chart_path, dest = os.fspath(chart_ref), os.fspath(chart_path), os.fspath(dest)
    if not chart_ref or not chart_path or not dest:
        raise HelmError("empty input value given for UnTarHelmChart")
    try:
        os.stat(dest)
    except FileNotFoundError:
        try:
            os.stat(chart_path)
        except OSError:
            try:
                os.makedirs(chart_path, mode=0o755, exist_ok=True)
            except OSError as exc:
                raise HelmError(f"failed to untar (mkdir): {exc}") from exc
        else:
            raise HelmError(
                f"failed to untar: a file or directory with the name {dest} already exists"
            ) from None
    except OSError as exc:
        raise HelmError(f"failed UnTarHelmChart: {exc}") from exc
    _expand_file(dest, chart_ref)


def has_requires(helm_dir: str | os.PathLike[str]) -> str:
    """Return the path of requires.yaml inside ``helm_dir``."""
    requires = os.path.join(os.fspath(helm_dir), "requires.yaml")
    if not os.path.exists(requires):
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), requires)
    if os.path.isdir(requires):
        raise HelmError("found Dir, not requires.yaml file")
    return requires


def parse_helm_requires(file_name: str | os.PathLike[str]) -> Requires:
    """Parse the first document of a requires.yaml, rejecting unknown fields."""
    try:
        with open(file_name, encoding="utf-8") as handle:
            content = handle.read()
    except OSError as exc:
        raise HelmError(f"unable to read file due to: {exc}") from exc
    document = content.split(YAML_SEPARATOR)[0]
    try:
        data = next(iter(yaml.safe_load_all(document)), None)
    except yaml.YAMLError as exc:
        raise HelmError(f"unable to parse {file_name}\nyaml: {document}\n {exc}") from exc
    try:
        return Requires.from_dict(data)
    except ValueError as exc:
        raise HelmError(f"unable to UnmarshalStrict {file_name}\nyaml: {document}\n {exc}") from exc


def validate_helm_requires(file_name: str | os.PathLike[str]) -> Requires:
    """Parse a requires.yaml and check that it lists at least one image."""
    requires = parse_helm_requires(file_name)
    try:
        requires.validate_not_empty()
    except ValueError as exc:
        raise HelmError(str(exc)) from exc
    return requires