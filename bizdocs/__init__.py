"""bizdocs: business documents core (totals, numbered documents, stock)."""

__version__ = "0.1.0"
