"""Helpers for working with registry image listings and version lists."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from .models import OCI_IMAGE_MANIFEST_MEDIA_TYPE, ImageDetail, SourceVersion

_ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


def remove_duplicates(versions: Iterable[SourceVersion]) -> list[SourceVersion]:
    """Keep the first version for each name, dropping later ones with the same name."""
    seen: set[str] = set()
    result: list[SourceVersion] = []
    for version in versions:
        if version.name not in seen:
            seen.add(version.name)
            result.append(SourceVersion(name=version.name, digest=version.digest))
    return result


def remove_string(items: Iterable[str], item: str) -> list[str]:
    """Return ``items`` without the first occurrence of ``item``."""
    result = list(items)
    if item in result:
        result.remove(item)
    return result


def delete_empty_strings(items: Iterable[str] | None) -> list[str]:
    """Return the non-empty strings of ``items``."""
    return [text for text in items or () if text != ""]


def split_ecr_name(name: str) -> tuple[str, str]:
    """Split ``registry/path/chart`` into (``path/chart``, ``chart``)."""
    parts = name.split("/")
    if len(parts) > 1:
        return "/".join(parts[1:]), parts[-1]
    raise ValueError("parsing chartName, check the input URI is a valid ECR URI")


def image_tag_filter(details: Iterable[ImageDetail], version: str) -> list[ImageDetail]:
    """Select images with a tag that starts with ``version`` and mentions latest.

    An image is listed once for every tag of it that matches.
    """
    return [
        detail
        for detail in details
        for tag in detail.image_tags
        if tag.startswith(version) and "latest" in tag
    ]


def _utc(moment: datetime) -> datetime:
    return moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment


def get_latest_image_sha(details: Iterable[ImageDetail]) -> SourceVersion:
    """Return the first tag and digest of the most recently pushed OCI image."""
    latest: ImageDetail | None = None
    latest_time = _ZERO_TIME
    for detail in details:
        if (
            detail.image_pushed_at is None
            or detail.image_digest is None
            or not detail.image_tags
            or detail.image_manifest_media_type != OCI_IMAGE_MANIFEST_MEDIA_TYPE
        ):
            continue
        pushed = _utc(detail.image_pushed_at)
        if latest_time < pushed:
            latest, latest_time = detail, pushed
    if latest is None:
        raise LookupError("error no images found")
    return SourceVersion(name=latest.image_tags[0], digest=latest.image_digest)