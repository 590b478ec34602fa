"""Provision a macOS developer workstation and test the provisioner in tart VMs."""

__version__ = '0.1.0'
