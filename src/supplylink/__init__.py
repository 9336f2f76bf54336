"""
SupplyLink - Regional demand aggregation and time-gated bidding.

Vendors post demand lines, suppliers undercut each other on the aggregated
per-state demand during two daily bidding windows.
"""

__version__ = "0.1.0"
__app_name__ = "supplylink"
