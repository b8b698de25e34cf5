"""shipyard: build, package and publish a multi-target release."""

__version__ = "0.3.0"
