"""State layer.

This package decides how a normalized snapshot changes a device: zone and
geofence membership, capability-set sync, value/setting diffs, warnings
and triggers.
"""
