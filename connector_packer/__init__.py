"""Connector Packer: package connector plugins and scaffold new connectors."""
