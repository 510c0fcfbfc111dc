"""Command line interface for budgetsync."""
