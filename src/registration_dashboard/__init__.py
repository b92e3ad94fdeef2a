"""Data loading core of the event registration and payment dashboard."""

from registration_dashboard.loader import GuardedLoader, LoaderSettings, LoaderState

__all__ = ["GuardedLoader", "LoaderSettings", "LoaderState"]
