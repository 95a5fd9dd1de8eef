"""SQLite persistence for replication tasks."""
