"""Auction domain services: timer sync, lot queues, roster and pricing.

This package contains the core logic that HTTP routes and socket handlers
import, keeping transport concerns separated from the timer and queue
mechanics. All persistent state is reached through ``auction.store``.
"""
