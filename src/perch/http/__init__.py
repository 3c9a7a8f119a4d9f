"""HTTP primitives — request, response, headers, query strings, forms."""
