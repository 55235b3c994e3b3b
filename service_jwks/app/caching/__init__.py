"""Signing key cache."""
