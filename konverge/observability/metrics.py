"""Prometheus metrics for the reconcile loop."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

passes_total = Counter(
    "konverge_passes_total",
    "Reconcile passes by outcome",
    ["outcome"],  # ok | partial | fatal
)

apply_operations_total = Counter(
    "konverge_apply_operations_total",
    "Create/update/delete calls issued, by operation and result",
    ["operation", "result"],  # result: success | failure
)

list_failures_total = Counter(
    "konverge_list_failures_total",
    "Resource types whose list call failed during enumeration",
)

manifest_errors_total = Counter(
    "konverge_manifest_errors_total",
    "Manifest files or documents skipped during loading",
    ["reason"],  # read | decode | unidentifiable | missing-namespace
)

live_objects = Gauge(
    "konverge_live_objects",
    "Objects observed in the cluster by the last enumeration",
)

desired_objects = Gauge(
    "konverge_desired_objects",
    "Objects declared by manifests in the last load",
)

pass_duration_seconds = Histogram(
    "konverge_pass_duration_seconds",
    "Wall-clock duration of a full reconcile pass",
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
)
