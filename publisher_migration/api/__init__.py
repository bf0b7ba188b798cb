"""HTTP API for the publisher migration."""
