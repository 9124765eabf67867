"""Flag Route53 A records that point at addresses no live EC2 capacity owns."""

__version__ = "0.1.0"
