"""User-facing surfaces: REST API and terminal client."""
