"""podsearch - podcast and episode search over the Podcast Index catalog."""

__version__ = "0.1.0"
