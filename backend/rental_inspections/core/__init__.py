"""Core configuration, persistence, security and error types."""
