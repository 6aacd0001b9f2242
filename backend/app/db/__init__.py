"""MongoDB client lifecycle."""
