"""Giftworks - image generation proxy and print-on-demand fulfillment relay."""

__version__ = "1.0.0"
