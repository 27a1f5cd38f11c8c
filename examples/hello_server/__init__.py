"""Hello Server example: login, refresh, and a protected greeting."""
