"""Cross-cutting plumbing for the datasources (one HTTP session for every external call)."""
