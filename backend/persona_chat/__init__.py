"""Persona Chat - streaming chat sessions with AI personas."""

__version__ = "1.0.0"
