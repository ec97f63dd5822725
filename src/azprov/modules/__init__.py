"""Self-contained helper modules for azprov."""
