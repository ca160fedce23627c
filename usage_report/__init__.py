"""Report AI and memory usage for Cloud Foundry orgs and spaces."""

__version__ = "1.5.0"
