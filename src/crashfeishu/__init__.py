"""Supervisor event listener that pushes crash alerts to Feishu."""

__version__ = "0.1.0"
