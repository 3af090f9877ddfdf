"""TourWise — tour package search across multiple providers."""

__version__ = "0.1.0"
