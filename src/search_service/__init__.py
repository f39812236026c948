"""Full-text search service with cache-aside queries and event-driven indexing."""

__version__ = "0.1.0"
