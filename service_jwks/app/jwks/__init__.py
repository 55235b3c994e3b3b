"""
JWKS client package.

Contains logic for retrieving JSON Web Key Sets and turning their RSA
signing keys into PEM material for token verification.

Key points:
- Non-signing keys (other kty, use != "sig", no key material) are skipped.
- Corrupt material on an otherwise eligible key fails the whole batch.
- Selection is by exact, case-sensitive kid match.
"""
