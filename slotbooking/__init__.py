"""
slotbooking - availability and slot-booking engine for service businesses.
"""

__version__ = "0.3.0"
