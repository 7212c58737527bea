"""
Coin watchlists: owned, named collections of tracked coins with notes,
a public/private switch and a browsable public directory.
"""

__version__ = "0.1.0"
