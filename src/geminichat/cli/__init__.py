"""Command line interface for geminichat."""
