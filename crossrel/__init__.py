"""crossrel - cross-compile, archive, publish and deploy release builds."""

__version__ = "0.4.0"
