"""installctl - control plane for a self-hosted Kubernetes cluster installer."""

__version__ = "0.1.0"
