"""Command-line interface and GitHub Actions entry point for hunklens."""
