"""Durable pending/failed store for tag replication tasks."""

__version__ = "0.1.0"
