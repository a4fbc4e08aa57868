"""Operator commands: manifest generation, install/uninstall, status."""
