"""Adapters connecting the domain ports to files, databases and HTTP services."""
