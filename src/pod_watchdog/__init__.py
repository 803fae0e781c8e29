"""
Pod Watchdog - Kubernetes Pod Lifetime Enforcer

Periodically lists pods in the configured namespaces and deletes those that
outlived their maximum lifetime or their TTL label.
"""

__version__ = "1.0.0"
