"""Pod target discovery pipeline.

Submodules
----------
decoder    -- parse_pod_list / parse_pod: raw payloads to typed pods.
labels     -- synthesize: one label set per scrape-able pod endpoint.
keys       -- build_sync_key: stable (kind, section, identity) keys.
translator -- EventTranslator: watch actions to sync events on a bounded channel.
reconciler -- TargetReconciler: merges sync events into the live target map.
watcher    -- PodWatcher: list-then-watch loop with relist and backoff.
"""

from kubesd.discovery.decoder import DecodeError, PodDecodeError, PodListDecodeError, parse_pod, parse_pod_list
from kubesd.discovery.keys import build_sync_key
from kubesd.discovery.labels import synthesize
from kubesd.discovery.reconciler import TargetReconciler
from kubesd.discovery.translator import EventTranslator

__all__ = [
    "DecodeError",
    "EventTranslator",
    "PodDecodeError",
    "PodListDecodeError",
    "TargetReconciler",
    "build_sync_key",
    "parse_pod",
    "parse_pod_list",
    "synthesize",
]
