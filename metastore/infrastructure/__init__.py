"""Infrastructure layer: backing-store clients, persistence, locking and logging."""
