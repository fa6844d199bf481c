"""Canonical record models."""
