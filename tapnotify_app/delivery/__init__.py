"""HTTP transport, webhook delivery and message providers."""
