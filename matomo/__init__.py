"""Matomo analytics platform: environment discovery and CDK provisioning."""

__version__ = "0.1.0"
