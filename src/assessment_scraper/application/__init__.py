"""Application layer: ports, cache facade and use-cases."""
