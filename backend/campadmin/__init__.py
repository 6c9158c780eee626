"""campadmin - back office API for the camping-gear storefront."""
