"""Test package for Connector Packer."""
