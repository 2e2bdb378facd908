"""Weather observations, caching and durable storage."""
