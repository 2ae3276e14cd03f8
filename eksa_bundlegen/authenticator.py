"""Registry credentials for package installs, shared through cluster config maps and jobs."""

from __future__ import annotations

import copy
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

from .models import PACKAGE_NAMESPACE

CONFIG_MAP_NAME = "ns-secret-map"
ECR_TOKEN_NAME = "ecr-token"
CRON_JOB_NAME = "cron-ecr-renew"
JOB_EXEC_NAME = "eksa-auth-refresher-"
MIRROR_CRED_NAME = "registry-mirror-cred"
HELM_REGISTRY_CONFIG_ENV = "HELM_REGISTRY_CONFIG"
CONTROLLER_LABELS = {"createdBy": "controller"}
DELETE_PROPAGATION_BACKGROUND = "Background"


class NotFoundError(LookupError):
    """Raised by a cluster client when a requested object does not exist."""


@dataclass
class ConfigMap:
    """A config map holding string data."""

    name: str
    namespace: str
    data: dict[str, str] = field(default_factory=dict)


@dataclass
class CronJob:
    """A scheduled job with the template of the jobs it runs."""

    name: str
    namespace: str
    suspend: bool | None = False
    job_template: dict[str, Any] = field(default_factory=dict)


@dataclass
class Job:
    """A job run in the cluster."""

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    spec: dict[str, Any] = field(default_factory=dict)
    succeeded: int = 0


class KubeClient(Protocol):
    """The cluster operations the authenticator needs.

    Lookups of missing objects raise NotFoundError.
    """

    def get_config_map(self, namespace: str, name: str) -> ConfigMap:
        """Return the named config map."""
        ...

    def update_config_map(self, config_map: ConfigMap) -> ConfigMap:
        """Store ``config_map`` and return the stored object."""
        ...

    def get_cron_job(self, namespace: str, name: str) -> CronJob:
        """Return the named cron job."""
        ...

    def create_job(self, job: Job) -> Job:
        """Create ``job`` and return the created object."""
        ...

    def list_jobs(self, namespace: str, labels: dict[str, str]) -> list[Job]:
        """Return the jobs in ``namespace`` carrying all of ``labels``."""
        ...

    def delete_job(self, namespace: str, name: str, propagation_policy: str) -> None:
        """Delete the named job."""
        ...


class Authenticator(ABC):
    """Provides credentials for private registries to package installs."""

    @abstractmethod
    def initialize(self, cluster_name: str) -> None:
        """Point the authenticator at the target cluster."""

    @abstractmethod
    def auth_filename(self) -> str:
        """Return the path of the registry authentication file, or an empty string."""

    @abstractmethod
    def add_to_config_map(self, name: str, namespace: str) -> None:
        """Record that ``name`` needs credentials in ``namespace``."""

    @abstractmethod
    def del_from_config_map(self, name: str, namespace: str) -> None:
        """Forget that ``name`` needs credentials in ``namespace``."""

    @abstractmethod
    def get_secret_values(self, namespace: str) -> dict[str, Any]:
        """Return the image pull secret values to pass to a chart."""

    @abstractmethod
    def add_secret_to_all_namespace(self) -> None:
        """Refresh the credentials in every recorded namespace."""


def _split_names(text: str) -> list[str]:
    names: list[str] = []
    for name in text.split(","):
        if name and name not in names:
            names.append(name)
    return names


class EcrSecret(Authenticator):
    """Authenticator backed by the ECR token secret and its refresher cron job."""

    def __init__(self, clientset: KubeClient) -> None:
        self.clientset = clientset
        self.target_cluster = PACKAGE_NAMESPACE

    def auth_filename(self) -> str:
        return os.environ.get(HELM_REGISTRY_CONFIG_ENV, "")

    def initialize(self, cluster_name: str) -> None:
        self.target_cluster = f"{PACKAGE_NAMESPACE}-{cluster_name}"

    def add_to_config_map(self, name: str, namespace: str) -> None:
        config_map = self.clientset.get_config_map(self.target_cluster, CONFIG_MAP_NAME)
        names = _split_names(config_map.data.get(namespace, ""))
        if name and name not in names:
            names.append(name)
        config_map.data[namespace] = ",".join(names)
        self.clientset.update_config_map(config_map)

    def del_from_config_map(self, name: str, namespace: str) -> None:
        config_map = self.clientset.get_config_map(self.target_cluster, CONFIG_MAP_NAME)
        names = [n for n in _split_names(config_map.data.get(namespace, "")) if n != name]
        if names:
            config_map.data[namespace] = ",".join(names)
        else:
            config_map.data.pop(namespace, None)
        self.clientset.update_config_map(config_map)

    def get_secret_values(self, namespace: str) -> dict[str, Any]:
        return {"imagePullSecrets": [{"name": ECR_TOKEN_NAME}, {"name": MIRROR_CRED_NAME}]}

    def add_secret_to_all_namespace(self) -> None:
        cron_job = self.clientset.get_cron_job(PACKAGE_NAMESPACE, CRON_JOB_NAME)
        if cron_job.suspend:
            return
        job = Job(
            name=f"{JOB_EXEC_NAME}{time.time_ns() // 1_000_000}",
            namespace=PACKAGE_NAMESPACE,
            labels=dict(CONTROLLER_LABELS),
            spec=copy.deepcopy(cron_job.job_template),
        )
        self.clientset.create_job(job)
        self._cleanup_prev_runs()

    def _cleanup_prev_runs(self) -> None:
        for job in self.clientset.list_jobs(PACKAGE_NAMESPACE, dict(CONTROLLER_LABELS)):
            if job.succeeded == 1:
                self.clientset.delete_job(
                    PACKAGE_NAMESPACE, job.name, DELETE_PROPAGATION_BACKGROUND
                )