"""Combat core for the Kattegat pirate game."""

__version__ = "0.1.0"
