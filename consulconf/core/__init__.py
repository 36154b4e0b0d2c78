"""Core module for settings, exceptions, logging and tracing."""
