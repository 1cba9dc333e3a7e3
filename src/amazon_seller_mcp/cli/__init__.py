"""Command-line interface for amazon-seller-mcp."""
