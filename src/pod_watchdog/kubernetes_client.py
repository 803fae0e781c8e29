import os
from typing import List, Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from .exceptions import ConfigurationError
from .logger import get_logger
from .models import PodSnapshot

logger = get_logger(__name__)


class KubernetesClient:
    """Lists and deletes pods through the CoreV1 API.

    Errors raised by the API are propagated; callers decide whether a failure
    is fatal.
    """

    def __init__(self, kube_config_path: Optional[str] = None, v1=None):
        if v1 is not None:
            self.v1 = v1
            return

        self._load_configuration(kube_config_path)
        self.v1 = client.CoreV1Api()
        logger.info("Kubernetes client initialized")

    @staticmethod
    def _load_configuration(kube_config_path):
        # First, try an explicit kubeconfig path if set
        if kube_config_path and os.path.exists(kube_config_path):
            logger.info("Loading kubeconfig", path=kube_config_path)
            config.load_kube_config(config_file=kube_config_path)
            return

        try:
            # In-cluster config (when running in Kubernetes)
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
            return
        except ConfigException as e:
            logger.warning("Failed to get in-cluster config", error=str(e))

        try:
            # Fall back to the default kubeconfig location for local development
            config.load_kube_config()
            logger.info("Loaded kubeconfig from default location")
        except ConfigException as e:
            raise ConfigurationError(f"Could not load Kubernetes configuration: {e}") from e

    def list_pods(self, namespace: str, label_selector: str = "") -> List[PodSnapshot]:
        """List pods in a namespace matching the label selector"""
        pods = self.v1.list_namespaced_pod(
            namespace=namespace,
            label_selector=label_selector,
            watch=False,
        )
        return [PodSnapshot.from_k8s(pod) for pod in pods.items]

    def delete_pod(self, namespace: str, name: str) -> None:
        """Delete a pod"""
        self.v1.delete_namespaced_pod(
            name=name,
            namespace=namespace,
            body=client.V1DeleteOptions(),
        )

    def test_connection(self) -> bool:
        """Test Kubernetes connection"""
        try:
            self.v1.get_api_resources()
            return True
        except Exception as e:
            logger.warning("Kubernetes connection test failed", error=str(e))
            return False
