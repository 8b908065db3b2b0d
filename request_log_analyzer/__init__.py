"""Request log analysis: correlate log lines into requests and aggregate them with trackers."""

__version__ = "0.1.0"
