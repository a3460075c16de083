"""Services: HTTP pool, upstream fetcher, routing tree loader, result cache, request handler."""
