"""Flow Automator - paced, pausable job queue for video generation automation."""

__app_name__ = "flow-automator"
__version__ = "0.1.0"

__all__ = ["__app_name__", "__version__"]
