"""
WireGuard Access Server
Provisions VPN client devices and keeps the WireGuard peer table in step
with the device registry
"""

__version__ = "1.0.0"
