"""Settings defaults, YAML loading, action definitions and validation."""
