"""API route modules, one router factory per resource."""
