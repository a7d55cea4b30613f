"""hubbot - plugin runtime for a long-running automation host."""

__version__ = "0.3.0"
