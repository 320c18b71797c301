"""Networking toolkit: byte buffers, YAML configuration, logging, addresses, URIs, sockets and a threaded HTTP server."""

__version__ = "0.1.0"