"""Teacher-coaching backend: recording pipeline and provider proxies."""
