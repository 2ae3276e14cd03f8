"""Looking up image digests and credentials in a container registry."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from typing import Protocol

from .ecr_helper import get_latest_image_sha, image_tag_filter, remove_duplicates, remove_string
from .models import (
    OCI_IMAGE_MANIFEST_MEDIA_TYPE,
    DockerAuth,
    ImageDetail,
    Project,
    SourceVersion,
)

log = logging.getLogger("BundleGenerator")

_MISSING_IMAGE = "does not exist within the repository"


class EcrError(Exception):
    """Raised when a registry or identity lookup fails."""


@dataclass(frozen=True)
class DescribeImagesRequest:
    """Parameters for listing images in a repository."""

    repository_name: str
    image_tags: tuple[str, ...] = ()
    image_digests: tuple[str, ...] = ()
    next_token: str | None = None


@dataclass
class DescribeImagesResponse:
    """One page of image details, with a token for the next page if any."""

    image_details: list[ImageDetail] = field(default_factory=list)
    next_token: str | None = None


class RegistryClient(Protocol):
    """The registry operations the bundle generator needs."""

    def describe_images(self, request: DescribeImagesRequest) -> DescribeImagesResponse:
        """Return one page of images matching ``request``."""
        ...

    def get_authorization_token(self) -> list[str]:
        """Return the authorization tokens issued for the caller."""
        ...


class _CallerIdentityClient(Protocol):
    def get_caller_identity(self) -> str | None:
        """Return the account id of the caller."""
        ...


class EcrClient:
    """Registry client that resolves tags to digests."""

    def __init__(self, registry_client: RegistryClient, needs_creds: bool = False) -> None:
        self.registry_client = registry_client
        self.auth_config = ""
        if needs_creds:
            self.auth_config = self.get_auth_token()

    def describe(self, request: DescribeImagesRequest) -> list[ImageDetail]:
        """Return all image details for ``request``, following pagination."""
        try:
            response = self.registry_client.describe_images(request)
        except Exception as exc:
            raise EcrError(f"unable to complete DescribeImagesRequest to ECR: {exc}") from exc
        images = list(response.image_details)
        while response.next_token is not None:
            request = replace(request, next_token=response.next_token)
            try:
                response = self.registry_client.describe_images(request)
            except Exception:
                break
            images.extend(response.image_details)
        return images

    def _describe(self, request: DescribeImagesRequest) -> list[ImageDetail]:
        try:
            return self.describe(request)
        except EcrError as exc:
            raise EcrError(f"unable to complete DescribeImagesRequest to ECR: {exc}") from exc

    def get_sha_for_inputs(self, project: Project) -> list[SourceVersion]:
        """Resolve each requested tag of ``project`` to a name and digest."""
        versions: list[SourceVersion] = []
        log.info("Looking up ECR for image SHA, Repository=%s", project.repository)
        for tag in project.versions:
            if not tag.name.endswith("latest"):
                details = self._describe(
                    DescribeImagesRequest(repository_name=project.repository, image_tags=(tag.name,))
                )
                versions.extend(
                    SourceVersion(name=tag.name, digest=detail.image_digest or "")
                    for detail in details
                    if detail.image_manifest_media_type == OCI_IMAGE_MANIFEST_MEDIA_TYPE
                    and detail.image_tags
                )
            if tag.name == "latest":
                details = self._describe(DescribeImagesRequest(repository_name=project.repository))
                versions.append(get_latest_image_sha(image_tag_filter(details, "")))
                continue
            if tag.name.endswith("-latest"):
                prefix = tag.name.split("-latest")[0]
                details = self._describe(DescribeImagesRequest(repository_name=project.repository))
                versions.append(get_latest_image_sha(image_tag_filter(details, prefix)))
                continue
        return remove_duplicates(versions)

    def tag_from_sha(self, repository: str, sha: str, substring_tag: str) -> str:
        """Return the tag of the image with digest ``sha``, preferring one ending in ``substring_tag``."""
        if not repository or not sha:
            raise EcrError("empty repository, or sha passed to the function")
        log.info("Looking up ECR for image SHA, Repository=%s", repository)
        try:
            details = self.describe(
                DescribeImagesRequest(repository_name=repository, image_digests=(sha,))
            )
        except EcrError as exc:
            if _MISSING_IMAGE in str(exc):
                return ""
            raise EcrError(f"looking up image details {exc}") from exc
        for detail in details:
            if not detail.image_tags:
                continue
            tags = remove_string(detail.image_tags, "latest")
            detail.image_tags = tags
            for tag in tags:
                if tag.endswith(substring_tag):
                    return tag
            if tags:
                return tags[0]
        return ""

    def get_auth_token(self) -> str:
        """Return the first authorization token issued by the registry."""
        tokens = self.registry_client.get_authorization_token()
        if not tokens:
            raise EcrError("no authorization data returned")
        return tokens[0]


@dataclass
class DockerAuthFile:
    """A credentials file written for registry clients."""

    authfile: str = ""

    def remove(self) -> None:
        """Delete the credentials file."""
        if not self.authfile:
            raise EcrError("no Authfile in DockerAuthFile given")
        with contextlib.suppress(OSError):
            os.remove(self.authfile)


def new_auth_file(docker_auth: DockerAuth) -> DockerAuthFile:
    """Write ``docker_auth`` as JSON to a new temporary file."""
    content = json.dumps(docker_auth.to_dict(), separators=(",", ":"))
    try:
        with tempfile.NamedTemporaryFile(
            "w", prefix="dockerAuth", delete=False, encoding="utf-8"
        ) as handle:
            handle.write(content)
    except OSError as exc:
        raise EcrError(f"creating tempfile {exc}") from exc
    return DockerAuthFile(authfile=handle.name)


class StsClient:
    """Identity client that records the caller's account id."""

    def __init__(self, client: _CallerIdentityClient, account: bool = False) -> None:
        self.client = client
        self.account_id = ""
        if account:
            account_id = client.get_caller_identity()
            if not account_id:
                raise EcrError("empty Account ID from stslookup call")
            self.account_id = account_id