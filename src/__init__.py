"""Content orchestrator: evidence retrieval, generation, validation and the HTTP API."""
