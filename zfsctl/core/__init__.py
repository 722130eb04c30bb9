"""Core plumbing: configuration, logging, command execution and properties."""
