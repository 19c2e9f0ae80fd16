"""Command line tool for verifying local helm charts."""
