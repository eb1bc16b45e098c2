"""Media catalog access gateway."""
