"""Backup, restore, deploy and health-check tooling for a docker compose SearXNG stack."""

__version__ = "0.1.0"
