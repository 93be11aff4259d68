"""Move game saves to a single storage path and link them back into place."""
