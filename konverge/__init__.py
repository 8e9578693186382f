"""Konverge: declarative reconciliation of a Kubernetes cluster from a manifest directory."""

__version__ = "0.1.0"
