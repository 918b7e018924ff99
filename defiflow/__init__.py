"""Workflow builder backend for composing and simulating DeFi actions."""

__version__ = "0.1.0"
