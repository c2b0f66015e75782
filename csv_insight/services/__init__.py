"""Services: aggregation, data store, filtering, transformations, analytics and output helpers."""
