"""FS DASH: broker relay backend with real-time fan-out to browser clients."""

__version__ = "0.1.0"
