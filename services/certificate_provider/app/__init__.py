"""Self-signed certificate provider job."""
