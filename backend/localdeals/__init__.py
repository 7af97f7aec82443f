"""LocalDeals backend."""
