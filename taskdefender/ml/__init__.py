"""Task analysis and contextual insight heuristics."""
