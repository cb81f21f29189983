"""kube-deploy: declarative Kubernetes deployments from a config folder."""

__version__ = "0.1.0"
