"""Bidirectional call layer: envelopes, procedure routers and dispatch.

Both peers use the same pieces; only the transport and the context handed to
handlers differ.
"""
