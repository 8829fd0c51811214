"""schemagit command-line interface."""
