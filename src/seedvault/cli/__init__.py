"""Typer commands and Rich presentation."""
