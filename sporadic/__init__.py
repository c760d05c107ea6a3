"""sporadic: run a command in parallel, over and over, and collect its sporadic failures."""

__version__ = "0.1.0"
