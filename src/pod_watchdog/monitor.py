from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from . import metrics
from .aging import policy_from_config
from .config import WatchdogConfig
from .exceptions import TTLParseError
from .logger import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_label_selector(labels: Mapping[str, str]) -> str:
    """Create a label selector string from a mapping"""
    return ",".join(f"{key}={value}" for key, value in labels.items())


@dataclass
class CycleResult:
    """Counts gathered during one monitoring cycle, used for the summary log"""

    namespaces_failed: int = 0
    examined: int = 0
    terminated: int = 0
    would_terminate: int = 0
    evaluation_failures: int = 0
    delete_failures: int = 0


class PodMonitor:
    """Runs one monitoring pass over every configured namespace"""

    def __init__(self, k8s_client, config: WatchdogConfig, clock: Optional[Callable[[], datetime]] = None):
        self.k8s_client = k8s_client
        self.config = config
        self.clock = clock or utcnow

    def run(self) -> CycleResult:
        """Perform the monitoring and cleanup operation.

        List, evaluation and delete failures are logged and absorbed so that
        one bad namespace or pod never stops the rest of the cycle.
        """
        logger.info("Starting pod monitoring and cleanup")
        result = CycleResult()

        with metrics.monitoring_duration_seconds.time():
            label_selector = build_label_selector(self.config.label_selectors)
            policy = policy_from_config(self.config)
            logger.debug("Resolved aging policy", policy=repr(policy), label_selector=label_selector)

            for namespace in self.config.namespaces:
                self._process_namespace(namespace, label_selector, policy, result)

        logger.info(
            "Pod monitoring cycle completed",
            dry_run=self.config.dry_run,
            examined=result.examined,
            terminated=result.terminated,
            would_terminate=result.would_terminate,
            namespaces_failed=result.namespaces_failed,
            evaluation_failures=result.evaluation_failures,
            delete_failures=result.delete_failures,
        )
        return result

    def _process_namespace(self, namespace, label_selector, policy, result):
        log = logger.bind(namespace=namespace)
        log.debug("Processing namespace")

        try:
            pods = self.k8s_client.list_pods(namespace, label_selector)
        except Exception as e:
            log.error("Failed to list pods", error=str(e))
            result.namespaces_failed += 1
            return

        log.debug("Found pods with matching labels", count=len(pods))
        metrics.pods_examined_total.inc(len(pods))
        result.examined += len(pods)

        for pod in pods:
            pod_log = log.bind(pod=pod.name)

            try:
                is_old = policy.is_old(pod, self.clock())
            except TTLParseError as e:
                pod_log.warning("Unable to calculate pod age", error=str(e))
                result.evaluation_failures += 1
                continue

            if not is_old:
                continue

            if self.config.dry_run:
                pod_log.info("DRY RUN: Would terminate pod")
                metrics.pods_terminated_total.labels(namespace=namespace, dry_run="true").inc()
                result.would_terminate += 1
                continue

            try:
                self.k8s_client.delete_pod(namespace, pod.name)
            except Exception as e:
                # The next cycle re-lists and re-evaluates the pod if it still exists
                pod_log.error("Failed to terminate pod", error=str(e))
                result.delete_failures += 1
                continue

            pod_log.info("Successfully terminated pod")
            metrics.pods_terminated_total.labels(namespace=namespace, dry_run="false").inc()
            metrics.pods_terminated_by_age_total.labels(namespace=namespace).inc()
            result.terminated += 1
