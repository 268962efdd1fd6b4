"""Command line interface for utRunner."""
