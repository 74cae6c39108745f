"""Supervise an NGINX process, derive lifecycle events from its logs, and host plugins."""

__version__ = "0.1.0"