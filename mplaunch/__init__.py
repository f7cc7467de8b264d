"""Provision ephemeral Multipass VMs from cloud-init files."""

__version__ = '0.1.0'
