"""Social feed: posts with an embedded JPG/PNG image, REST API and feed client."""

__version__ = "0.1.0"
