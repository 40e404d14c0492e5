"""Dining philosophers simulation run with threads, semaphores or processes."""

__version__ = "0.1.0"

__all__ = ["__version__"]