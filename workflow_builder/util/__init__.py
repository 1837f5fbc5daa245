"""Shared helpers for integration steps and the step contract."""
