"""ctxcache - persistent project session context for short-lived CLI runs."""

__version__ = "0.1.0"
