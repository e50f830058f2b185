"""
smoke/cluster.py — Read-only query port over the Kubernetes API.

ClusterQueryPort is the only surface health checks talk to. KubernetesCluster
implements it with the official kubernetes client; tests substitute an
in-memory fake. Every operation is a list or get; nothing here writes.

All structured resources are returned as plain nested dicts in the shape the
API serves them (camelCase keys), so probes can walk them by path without
caring whether they came from a typed model or the CustomObjects API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from kubernetes import client as k8s_client
from kubernetes import config as kube_config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


class ClusterQueryError(Exception):
    """Base class for every error the query port raises."""


class ClusterConnectionError(ClusterQueryError):
    """API unreachable, unauthorized, or answered with a server error."""


class ResourceNotFoundError(ClusterQueryError):
    """Resource, resource type (group/version/resource), or API group absent."""


class PartialDataError(ClusterQueryError):
    """A field expected to be a sequence or mapping is absent or malformed."""


@dataclass(frozen=True)
class WorkloadStatus:
    name: str
    namespace: str
    phase: str


class ClusterQueryPort(Protocol):
    def server_version(self) -> str: ...

    def list_pods(
        self, namespace: str, label_selector: Optional[str] = None
    ) -> list[WorkloadStatus]: ...

    def list_nodes(self) -> list[dict[str, Any]]: ...

    def crd_exists(self, name: str) -> bool: ...

    def list_custom_resources(
        self, group: str, version: str, resource: str, namespace: Optional[str] = None
    ) -> list[dict[str, Any]]: ...

    def get_custom_resource(
        self,
        group: str,
        version: str,
        resource: str,
        name: str,
        namespace: Optional[str] = None,
    ) -> dict[str, Any]: ...

    def get_service_account(self, namespace: str, name: str) -> dict[str, Any]: ...

    def get_service(self, namespace: str, name: str) -> dict[str, Any]: ...

    def list_services(self, namespace: Optional[str] = None) -> list[dict[str, Any]]: ...

    def list_ingresses(self, namespace: Optional[str] = None) -> list[dict[str, Any]]: ...

    def list_ingress_classes(self) -> list[dict[str, Any]]: ...

    def api_group_version_available(self, group_version: str) -> bool: ...


class KubernetesCluster:
    """ClusterQueryPort backed by kubernetes.client.

    Translates ApiException by HTTP status (404 → ResourceNotFoundError,
    anything else → ClusterConnectionError) and urllib3 transport errors to
    ClusterConnectionError.
    """

    def __init__(self, api_client: Any, request_timeout: int = 10) -> None:
        self._api_client = api_client
        self._timeout = request_timeout
        self._core = k8s_client.CoreV1Api(api_client)
        self._networking = k8s_client.NetworkingV1Api(api_client)
        self._extensions = k8s_client.ApiextensionsV1Api(api_client)
        self._custom = k8s_client.CustomObjectsApi(api_client)
        self._version = k8s_client.VersionApi(api_client)

    def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        name = getattr(fn, "__name__", "?")
        try:
            return fn(*args, _request_timeout=self._timeout, **kwargs)
        except ApiException as exc:
            logger.debug("API call %s failed with status %s: %s", name, exc.status, exc.reason)
            if exc.status == 404:
                raise ResourceNotFoundError(f"{name}: not found") from exc
            raise ClusterConnectionError(f"{name}: HTTP {exc.status} {exc.reason}") from exc
        except HTTPError as exc:
            logger.debug("API call %s failed: %s", name, exc)
            raise ClusterConnectionError(f"{name}: {exc}") from exc

    def _to_dict(self, obj: Any) -> Any:
        return self._api_client.sanitize_for_serialization(obj)

    def _items(self, result: Any) -> list[dict[str, Any]]:
        payload = self._to_dict(result) if not isinstance(result, dict) else result
        return list(payload.get("items") or [])

    def server_version(self) -> str:
        info = self._call(self._version.get_code)
        return info.git_version

    def list_pods(
        self, namespace: str, label_selector: Optional[str] = None
    ) -> list[WorkloadStatus]:
        kwargs = {"label_selector": label_selector} if label_selector else {}
        result = self._call(self._core.list_namespaced_pod, namespace, **kwargs)
        return [
            WorkloadStatus(
                name=pod.metadata.name,
                namespace=pod.metadata.namespace or namespace,
                phase=(pod.status.phase if pod.status else None) or "Unknown",
            )
            for pod in result.items
        ]

    def list_nodes(self) -> list[dict[str, Any]]:
        return self._items(self._call(self._core.list_node))

    def crd_exists(self, name: str) -> bool:
        try:
            self._call(self._extensions.read_custom_resource_definition, name)
        except ResourceNotFoundError:
            return False
        return True

    def list_custom_resources(
        self, group: str, version: str, resource: str, namespace: Optional[str] = None
    ) -> list[dict[str, Any]]:
        if namespace:
            result = self._call(
                self._custom.list_namespaced_custom_object, group, version, namespace, resource
            )
        else:
            result = self._call(self._custom.list_cluster_custom_object, group, version, resource)
        return self._items(result)

    def get_custom_resource(
        self,
        group: str,
        version: str,
        resource: str,
        name: str,
        namespace: Optional[str] = None,
    ) -> dict[str, Any]:
        if namespace:
            return self._call(
                self._custom.get_namespaced_custom_object, group, version, namespace, resource, name
            )
        return self._call(self._custom.get_cluster_custom_object, group, version, resource, name)

    def get_service_account(self, namespace: str, name: str) -> dict[str, Any]:
        return self._to_dict(self._call(self._core.read_namespaced_service_account, name, namespace))

    def get_service(self, namespace: str, name: str) -> dict[str, Any]:
        return self._to_dict(self._call(self._core.read_namespaced_service, name, namespace))

    def list_services(self, namespace: Optional[str] = None) -> list[dict[str, Any]]:
        if namespace:
            return self._items(self._call(self._core.list_namespaced_service, namespace))
        return self._items(self._call(self._core.list_service_for_all_namespaces))

    def list_ingresses(self, namespace: Optional[str] = None) -> list[dict[str, Any]]:
        if namespace:
            return self._items(self._call(self._networking.list_namespaced_ingress, namespace))
        return self._items(self._call(self._networking.list_ingress_for_all_namespaces))

    def list_ingress_classes(self) -> list[dict[str, Any]]:
        return self._items(self._call(self._networking.list_ingress_class))

    def api_group_version_available(self, group_version: str) -> bool:
        """GET /apis/<group>/<version> itself.

        An aggregated API whose backend is down is still listed by discovery
        but answers 503 here, which surfaces as ClusterConnectionError.
        """
        try:
            self._call(
                self._api_client.call_api,
                f"/apis/{group_version}",
                "GET",
                header_params={"Accept": "application/json"},
                response_type="object",
                auth_settings=["BearerToken"],
            )
        except ResourceNotFoundError:
            return False
        return True


def connect(cfg: Settings) -> KubernetesCluster:
    """Build a KubernetesCluster from kubeconfig, falling back to in-cluster config.

    Raises whatever the kubernetes config loader raises; smoke.run reports it
    as an initialisation failure before any check runs.
    """
    try:
        kube_config.load_kube_config(config_file=cfg.kubeconfig_path, context=cfg.KUBE_CONTEXT)
    except (ConfigException, FileNotFoundError):
        logger.info("kubeconfig not usable, trying in-cluster configuration")
        kube_config.load_incluster_config()
    return KubernetesCluster(k8s_client.ApiClient(), request_timeout=cfg.SMOKE_REQUEST_TIMEOUT_SECONDS)
