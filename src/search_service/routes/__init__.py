"""HTTP routers for search, event ingestion and health checks."""
