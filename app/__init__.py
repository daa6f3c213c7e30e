"""Server entry point package."""
