"""HTTP API: health checks and the versioned router."""
