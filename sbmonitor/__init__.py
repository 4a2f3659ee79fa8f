"""
Service Bus Subscription Monitor

Liveness monitoring for long-lived Service Bus subscription workers.
"""

__version__ = "1.0.0"
