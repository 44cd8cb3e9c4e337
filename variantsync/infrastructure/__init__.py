"""Infrastructure layer: configuration, logging, persistence and the remote catalog client."""
