"""pubflow - phased publication of npm repositories (alpha, beta, production)."""

__version__ = "0.4.0"
