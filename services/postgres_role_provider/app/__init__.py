"""Read-only PostgreSQL role provider job."""
