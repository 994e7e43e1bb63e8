"""Logging setup for the command-line application."""
