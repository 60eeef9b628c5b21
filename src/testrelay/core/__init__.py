"""Core model, result type and exceptions."""
