"""Logging and metrics for kubesd."""
