"""cardsmith - knowledge-base augmented card composition for blueprint nodes."""

__version__ = "0.3.0"
