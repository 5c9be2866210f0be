"""notecache - client-side note and tag cache."""
