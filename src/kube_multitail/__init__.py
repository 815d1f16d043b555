"""kube-multitail - tail logs from every pod and container of Kubernetes apps"""

__version__ = "0.1.0"
