"""Natural-language SQL assistant backed by a single database session gateway."""

__version__ = "0.1.0"
