"""Per-kid rate limiting of signing key lookups."""
