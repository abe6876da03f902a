"""Identity, permission table, profile gate and authorization decisions."""
