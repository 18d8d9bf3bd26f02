"""
A Drone plugin that deploys Helm charts into a Kubernetes cluster based on the CI build event.
"""

__version__ = "0.1.0"
