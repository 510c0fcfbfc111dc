"""Domain layer for budgetsync application."""
