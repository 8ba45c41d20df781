"""Turborepo remote cache HTTP server."""
