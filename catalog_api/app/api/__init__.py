"""HTTP routes.  ``router.router`` aggregates every endpoint module."""
