"""Domain models (value objects) for requests, responses and configuration."""
