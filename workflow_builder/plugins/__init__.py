"""Third-party integrations, one sub-package per service."""
