"""
vpnDns - signed dynamic-IP updates for a single DNS "A" record.

A claimant signs its public IPv4 address and submits it; the reconciler
verifies the signature and makes the managed record point at that address.
"""

__version__ = "0.1.0"
