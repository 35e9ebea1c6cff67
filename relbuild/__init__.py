"""Release pipeline: build, sign, package and publish desktop app builds."""

__version__ = "0.1.0"
