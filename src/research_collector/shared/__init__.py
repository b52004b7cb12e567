"""Shared pure helpers used across layers."""
