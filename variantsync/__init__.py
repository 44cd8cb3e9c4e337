"""VariantSync - variant generation and remote catalog synchronization."""

__version__ = "0.1.0"
