"""Developer tools for access catalogs."""
