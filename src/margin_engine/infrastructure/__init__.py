"""Infrastructure layer: PostgreSQL persistence, in-memory persistence and logging."""
