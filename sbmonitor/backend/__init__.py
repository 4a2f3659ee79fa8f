"""Service side of the subscription monitor: health API, consumer adapter and app wiring."""
