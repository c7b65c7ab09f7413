"""Kubeconfig files, YAML/TOML patching, load balancer config and log unpacking."""

__version__ = "0.1.0"