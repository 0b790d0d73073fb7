"""NetworkX view over the stored adjacency rows."""
