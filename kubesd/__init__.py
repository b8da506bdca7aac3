"""kubesd: Kubernetes pod scrape-target discovery."""

__version__ = "0.1.0"
