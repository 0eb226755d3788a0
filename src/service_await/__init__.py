"""Readiness awaiting for Kubernetes Services and their Endpoints."""

__version__ = "0.1.0"
