"""market-lens: news search and stock price explorer."""

__version__ = "0.1.0"
